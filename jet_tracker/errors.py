"""
Error taxonomy for the collection pipeline.

Per-source and per-item failures (SourceFetchError, ClassificationError)
are absorbed by the orchestrator and reported in the run summary.
ConfigurationError, PreconditionError and AuthorizationError abort a run
before any write and are surfaced to the caller as a single message.
"""


class JetTrackerError(Exception):
    """Base class for all pipeline errors."""


class SourceFetchError(JetTrackerError):
    """A single source could not be fetched or parsed."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.reason = message


class ClassificationError(JetTrackerError):
    """The external classifier failed or returned an unusable payload."""


class ConfigurationError(JetTrackerError):
    """A required external-service credential is missing."""


class PreconditionError(JetTrackerError):
    """A run was requested without the state it depends on (e.g. no baseline)."""


class AuthorizationError(JetTrackerError):
    """The caller lacks the role required for a privileged operation."""


class DiscoveryUnavailable(JetTrackerError):
    """Outlet discovery is unreachable or returned malformed data."""

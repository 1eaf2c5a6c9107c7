"""Sources: outlet registry, discovery and user tracking preferences."""

from jet_tracker.sources.preferences import UserSettings, UserSettingsRepository
from jet_tracker.sources.repository import SourcesRepository
from jet_tracker.sources.schemas import OutletCandidate, Source

__all__ = [
    "OutletCandidate",
    "Source",
    "SourcesRepository",
    "UserSettings",
    "UserSettingsRepository",
]

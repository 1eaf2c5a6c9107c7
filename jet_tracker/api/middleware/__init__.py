"""API middleware."""

from jet_tracker.api.middleware.timeout import TimeoutMiddleware

__all__ = ["TimeoutMiddleware"]

"""Access control for privileged pipeline operations."""

from jet_tracker.auth.roles import ADMIN, AccessControl, RolesRepository

__all__ = ["ADMIN", "AccessControl", "RolesRepository"]

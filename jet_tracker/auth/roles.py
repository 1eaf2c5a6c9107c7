"""Role checks against the ``user_roles`` table."""

import logging

from jet_tracker.errors import AuthorizationError
from jet_tracker.storage.database import Database

logger = logging.getLogger(__name__)

ADMIN = "admin"

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS user_roles (
    id       BIGSERIAL PRIMARY KEY,
    user_id  TEXT NOT NULL,
    role     TEXT NOT NULL CHECK (role IN ('admin', 'user')),
    UNIQUE (user_id, role)
);
"""


class RolesRepository:
    """Read and grant user roles."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("User roles table ensured")

    async def has_role(self, user_id: str, role: str) -> bool:
        return bool(
            await self._db.fetchval(
                "SELECT EXISTS(SELECT 1 FROM user_roles WHERE user_id = $1 AND role = $2)",
                user_id,
                role,
            )
        )

    async def grant(self, user_id: str, role: str) -> None:
        await self._db.execute(
            "INSERT INTO user_roles (user_id, role) VALUES ($1, $2) "
            "ON CONFLICT (user_id, role) DO NOTHING",
            user_id,
            role,
        )


class AccessControl:
    """Guards privileged operations. Checks run before any side effect."""

    def __init__(self, roles: RolesRepository) -> None:
        self._roles = roles

    async def require_role(self, user_id: str | None, role: str = ADMIN) -> None:
        """
        Raises:
            AuthorizationError: No caller identity, or the caller lacks ``role``.
        """
        if not user_id:
            raise AuthorizationError("Authentication required")
        if not await self._roles.has_role(user_id, role):
            logger.warning("User %s denied: missing role %s", user_id, role)
            raise AuthorizationError(f"{role.capitalize()} access required")

"""
Odoo Session Manager - caches the authenticated user id for the process.
"""
import logging
from functools import lru_cache
from typing import Optional
from app.core.config import get_settings, Settings
from app.core.errors import (
    AuthenticationError,
    ConfigurationError,
    LeadConnectorError,
)
from app.services.odoo_client import OdooRPCClient

logger = logging.getLogger(__name__)


class OdooSessionManager:
    """
    Holds the Odoo uid obtained from ``common.authenticate``.

    The uid never expires on its own; callers invalidate it when Odoo rejects
    the credentials so that the next call authenticates again. Concurrent first
    calls may both authenticate, which is harmless.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 rpc: Optional[OdooRPCClient] = None):
        settings = settings or get_settings()
        self.db = settings.odoo_db
        self.login = settings.odoo_user_email
        self.api_key = settings.odoo_api_key
        self.base_url = settings.odoo_base_url
        self.rpc = rpc or OdooRPCClient(settings.odoo_base_url, timeout=settings.odoo_timeout)

        # In-memory uid cache
        self._uid: Optional[int] = None

    @property
    def cached_uid(self) -> Optional[int]:
        return self._uid

    async def ensure_authenticated(self) -> int:
        """
        Return the cached uid, authenticating first if needed.

        Raises:
            ConfigurationError: base URL, database, login or API key missing
            AuthenticationError: Odoo refused or returned an empty uid
        """
        if self._uid:
            logger.debug("Using cached Odoo uid")
            return self._uid

        if not (self.base_url and self.db and self.login and self.api_key):
            raise ConfigurationError(
                "Missing Odoo settings (ODOO_BASE_URL, ODOO_DB, ODOO_USER_EMAIL, ODOO_API_KEY)"
            )

        logger.info(f"Authenticating against Odoo database {self.db} as {self.login}")
        try:
            uid = await self.rpc.authenticate(self.db, self.login, self.api_key)
        except LeadConnectorError as e:
            logger.error(f"Odoo authentication failed: {e}")
            raise AuthenticationError(f"Odoo authentication failed: {e}") from e

        if not uid:
            raise AuthenticationError("Odoo authentication failed (empty uid)")

        self._uid = uid
        logger.info(f"Odoo session established, uid={uid}")
        return uid

    def invalidate(self):
        """Force re-authentication on the next ensure_authenticated() call."""
        if self._uid is not None:
            logger.warning("Dropping cached Odoo uid after an authorization failure")
        self._uid = None


@lru_cache()
def get_session_manager() -> OdooSessionManager:
    """Process-wide session cache."""
    return OdooSessionManager()

"""
Odoo JSON-RPC transport.
Wraps the /jsonrpc endpoint used for authentication and model calls.
"""
import itertools
import json
import logging
from typing import Any, Dict, List, Optional
import httpx
from app.core.errors import RemoteApplicationError, TransportError

logger = logging.getLogger(__name__)

# Odoo exception names that mean the credentials themselves were rejected
_AUTHORIZATION_ERRORS = ("AccessDenied", "SessionExpired")


class OdooRPCClient:
    """Thin async client for Odoo's JSON-RPC 2.0 interface."""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._ids = itertools.count(1)

    async def call(self, service: str, method: str, args: List[Any]) -> Any:
        """
        Invoke ``service.method(*args)`` and return the ``result`` field.

        Raises:
            TransportError: network failure or non-2xx HTTP status
            RemoteApplicationError: Odoo answered with an ``error`` object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {"service": service, "method": method, "args": args},
            "id": next(self._ids),
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/jsonrpc",
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Odoo RPC request failed: {e}")
            raise TransportError(f"Odoo unreachable: {e}") from e

        if response.status_code in (401, 403):
            raise RemoteApplicationError(
                f"Odoo rejected the request: HTTP {response.status_code}",
                authorization_failure=True,
            )
        if not response.is_success:
            raise TransportError(
                "Odoo request failed", status_code=response.status_code, body=response.text
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(
                "Odoo returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            ) from e

        error = data.get("error") if isinstance(data, dict) else None
        if error:
            raise RemoteApplicationError(
                _error_message(error),
                error=error if isinstance(error, dict) else {"message": str(error)},
                authorization_failure=_is_authorization_error(error),
            )

        return data.get("result") if isinstance(data, dict) else None

    async def authenticate(self, db: str, login: str, api_key: str) -> Any:
        return await self.call("common", "authenticate", [db, login, api_key, {}])

    async def execute_kw(
        self,
        db: str,
        uid: int,
        api_key: str,
        model: str,
        method: str,
        args: List[Any],
        kwargs: Optional[Dict[str, Any]] = None,
    ) -> Any:
        call_args = [db, uid, api_key, model, method, args]
        if kwargs:
            call_args.append(kwargs)
        return await self.call("object", "execute_kw", call_args)


def _error_message(error: Any) -> str:
    """Prefer error.data.message, then error.message, then the serialized error."""
    if isinstance(error, dict):
        details = error.get("data")
        if isinstance(details, dict) and details.get("message"):
            return str(details["message"])
        if error.get("message"):
            return str(error["message"])
    return json.dumps(error, default=str)


def _is_authorization_error(error: Any) -> bool:
    if not isinstance(error, dict):
        return False
    details = error.get("data") if isinstance(error.get("data"), dict) else {}
    name = str(details.get("name", ""))
    return any(marker in name for marker in _AUTHORIZATION_ERRORS)

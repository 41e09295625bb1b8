import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from app.core.config import Settings
from app.services.odoo_client import OdooRPCClient
from app.services.odoo_session_manager import OdooSessionManager

ODOO_URL = "https://odoo.test"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        groq_api_key="test-groq-key",
        odoo_base_url=ODOO_URL,
        odoo_db="piznalia",
        odoo_user_email="bot@piznalia.test",
        odoo_api_key="odoo-key",
        odoo_appointment_url="https://piznalia.test/cita",
    )


class FakeOdoo:
    """
    In-memory Odoo JSON-RPC endpoint for httpx.MockTransport.

    ``handlers`` maps "service.method" or "model.method" to a callable that
    receives the RPC args and returns either a result or a full response body
    (a dict with an "error" key).
    """

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.uid: Any = 7
        self.handlers: Dict[str, Callable[[List[Any]], Any]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        params = body["params"]
        if params["service"] == "common":
            key = f"common.{params['method']}"
        else:
            key = f"{params['args'][3]}.{params['args'][4]}"
        self.calls.append({"key": key, "args": params["args"]})

        if key == "common.authenticate" and key not in self.handlers:
            result = self.uid
        elif key in self.handlers:
            result = self.handlers[key](params["args"])
        else:
            result = []

        if isinstance(result, httpx.Response):
            return result
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def keys(self) -> List[str]:
        return [call["key"] for call in self.calls]

    def last(self, key: str) -> Dict[str, Any]:
        return [call for call in self.calls if call["key"] == key][-1]


@pytest.fixture
def fake_odoo():
    return FakeOdoo()


@pytest.fixture
def odoo_transport(fake_odoo):
    return httpx.MockTransport(fake_odoo)


@pytest.fixture
def session_manager(settings, odoo_transport):
    rpc = OdooRPCClient(settings.odoo_base_url, transport=odoo_transport)
    return OdooSessionManager(settings, rpc=rpc)


class FakeEngine:
    """Stands in for GroqEngine: returns a canned object or raises."""

    def __init__(self, result: Any = None, error: Exception = None):
        self.result = result if result is not None else {}
        self.error = error
        self.calls: List[tuple] = []

    async def analyze(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def fake_engine():
    return FakeEngine(
        {
            "intencion": "maquina",
            "idioma": "es",
            "pais": "España",
            "urgencia": "alta",
            "resumen": "Quiere una máquina SmartChef24h para su bar",
            "pregunta": "¿Qué precio tiene?",
            "datos_detectados": {
                "cantidad": "1 máquina",
                "ubicacion": "Sevilla",
                "plazo": "próximos meses",
            },
        }
    )


@pytest.fixture
def engine_factory():
    return FakeEngine

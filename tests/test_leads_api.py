import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.config import get_settings
from app.core.errors import ParseError, TransportError
from app.main import app
from app.routers.leads import get_crm_service, get_groq_engine
from app.services.crm_service import OdooCRMService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def crm(settings, session_manager, odoo_transport):
    return OdooCRMService(settings, session_manager=session_manager, transport=odoo_transport)


@pytest_asyncio.fixture
async def client_factory(settings, crm):
    def make(engine):
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_groq_engine] = lambda: engine
        app.dependency_overrides[get_crm_service] = lambda: crm
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    yield make
    app.dependency_overrides.clear()


async def test_health(client_factory, engine_factory):
    async with client_factory(engine_factory()) as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["ok"] is True


async def test_root(client_factory, engine_factory, settings):
    async with client_factory(engine_factory()) as client:
        response = await client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "operational"
    assert body["version"] == settings.app_version
    assert body["groq_model"] == settings.groq_model


class TestAnalyze:

    async def test_returns_normalized_analysis(self, client_factory, fake_engine, fake_odoo):
        async with client_factory(fake_engine) as client:
            response = await client.post(
                "/lead/analyze",
                json={"mensaje": "Quiero una máquina para mi bar", "origen": "web", "nombre": "Lucía"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["demo"] is False
        assert body["ai"]["status"] == "ok"
        assert body["ai"]["intent"] == "machine"
        assert body["ai"]["urgency"] == "high"
        assert body["ai"]["detected_data"]["location"] == "Sevilla"
        assert body["ai"]["raw"]["intencion"] == "maquina"
        assert "Origen: web" in fake_engine.calls[0][1]
        assert fake_odoo.calls == []

    @pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": "   \n"}, {"message": "  "}])
    async def test_blank_text_is_rejected(self, client_factory, fake_engine, fake_odoo, payload):
        async with client_factory(fake_engine) as client:
            response = await client.post("/lead/analyze", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "missing_text"
        assert fake_engine.calls == []
        assert fake_odoo.calls == []

    async def test_falls_through_empty_text_alias(self, client_factory, fake_engine):
        async with client_factory(fake_engine) as client:
            response = await client.post(
                "/lead/analyze", json={"text": "", "mensaje": "Quiero una máquina"}
            )

        assert response.status_code == 200
        assert "Quiero una máquina" in fake_engine.calls[0][1]

    async def test_numeric_text_is_accepted(self, client_factory, fake_engine):
        async with client_factory(fake_engine) as client:
            response = await client.post("/lead/analyze", json={"text": 12345})

        assert response.status_code == 200
        assert "12345" in fake_engine.calls[0][1]

    async def test_parse_error_is_soft_pending(self, client_factory, engine_factory):
        engine = engine_factory(error=ParseError("Model reply is not valid JSON"))

        async with client_factory(engine) as client:
            response = await client.post("/lead/analyze", json={"text": "Hola"})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["demo"] is True
        assert body["ai"]["status"] == "pending"
        assert body["ai"]["motive"] == "parse_error"

    async def test_transport_error_is_soft_pending(self, client_factory, engine_factory):
        engine = engine_factory(error=TransportError("Groq request failed", status_code=500))

        async with client_factory(engine) as client:
            response = await client.post("/lead/analyze", json={"text": "Hola"})

        assert response.status_code == 200
        assert response.json()["ai"]["motive"] == "transport_error"


class TestAnalyzeAndCreate:

    async def test_creates_lead(self, client_factory, fake_engine, fake_odoo):
        fake_odoo.handlers["crm.tag.search_read"] = lambda args: [
            {"id": 4, "name": "Máquina de Pizzas y comida"},
            {"id": 5, "name": "Urgencia: alta"},
        ]
        fake_odoo.handlers["crm.lead.create"] = lambda args: 321

        async with client_factory(fake_engine) as client:
            response = await client.post(
                "/lead/analyze-and-create",
                json={"text": "Quiero una máquina", "email": "a@b.es", "canal": "formulario"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["lead_id"] == 321
        assert body["enrichment"]["priority"] == 3
        assert "Máquina de Pizzas y comida" in body["enrichment"]["tags"]
        assert "Urgencia: alta" in body["enrichment"]["tags"]
        assert "Canal: formulario" in body["enrichment"]["tags"]
        vals = fake_odoo.last("crm.lead.create")["args"][5][0]
        assert vals["tag_ids"] == [[6, 0, [4, 5]]]
        assert vals["email_from"] == "a@b.es"

    async def test_blank_text_issues_no_remote_calls(self, client_factory, fake_engine, fake_odoo):
        async with client_factory(fake_engine) as client:
            response = await client.post("/lead/analyze-and-create", json={"text": " "})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "missing_text"
        assert fake_engine.calls == []
        assert fake_odoo.calls == []

    async def test_parse_error_is_hard_failure(self, client_factory, engine_factory, fake_odoo):
        engine = engine_factory(error=ParseError("Model reply is not valid JSON"))

        async with client_factory(engine) as client:
            response = await client.post("/lead/analyze-and-create", json={"text": "Hola"})

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["error"] == "crm_or_ai_error"
        assert detail["code"] == "parse_error"
        assert fake_odoo.calls == []

    async def test_non_numeric_lead_id_is_hard_failure(self, client_factory, fake_engine, fake_odoo):
        fake_odoo.handlers["crm.lead.create"] = lambda args: "oops"

        async with client_factory(fake_engine) as client:
            response = await client.post("/lead/analyze-and-create", json={"text": "Hola"})

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["code"] == "remote_write_error"
        assert "lead_id" not in response.json()


class TestCallWebhook:

    async def test_transcript_becomes_lead(self, client_factory, fake_engine, fake_odoo):
        fake_odoo.handlers["crm.lead.create"] = lambda args: 42

        async with client_factory(fake_engine) as client:
            response = await client.post(
                "/webhooks/zadarma/call",
                json={"transcript": "Buenas, llamo por las máquinas", "callerId": "+34600000000"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["lead_id"] == 42
        assert body["source"] == "zadarma"
        assert "Origen: teléfono" in body["enrichment"]["tags"]
        assert "Canal: llamada" in body["enrichment"]["tags"]
        vals = fake_odoo.last("crm.lead.create")["args"][5][0]
        assert vals["contact_name"] == "Llamada entrante"
        assert vals["phone"] == "+34600000000"
        assert "Canal: llamada" in fake_engine.calls[0][1]

    async def test_missing_transcript(self, client_factory, fake_engine, fake_odoo):
        async with client_factory(fake_engine) as client:
            response = await client.post("/webhooks/zadarma/call", json={"caller_name": "Ana"})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "missing_transcript"
        assert fake_engine.calls == []
        assert fake_odoo.calls == []

    async def test_crm_failure_is_hard_failure(self, client_factory, fake_engine, fake_odoo):
        fake_odoo.uid = False

        async with client_factory(fake_engine) as client:
            response = await client.post("/webhooks/zadarma/call", json={"transcript": "Hola"})

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["error"] == "call_ai_or_crm_error"
        assert detail["code"] == "authentication_error"

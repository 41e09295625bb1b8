"""
Odoo CRM Integration Service.
Writes analyzed and enriched leads to Odoo for sales team follow-up.
"""
import hashlib
import json
import logging
from typing import Any, Dict, Iterable, List, Optional
import httpx
from app.core.config import get_settings, Settings
from app.core.errors import (
    AuthenticationError,
    ConfigurationError,
    LeadConnectorError,
    RemoteApplicationError,
    RemoteWriteError,
)
from app.models.lead import (
    UNKNOWN_COUNTRY,
    EnrichmentResult,
    LeadAnalysis,
    LeadSubmission,
)
from app.services.enrichment import build_enrichment, detected_location
from app.services.odoo_client import OdooRPCClient
from app.services.odoo_session_manager import OdooSessionManager, get_session_manager

logger = logging.getLogger(__name__)

DEFAULT_LEAD_TITLE = "Nuevo lead desde IA"
_UNKNOWN_COUNTRY_NAMES = {"", UNKNOWN_COUNTRY.lower(), "desconocido"}


def compute_idempotency_key(submission: LeadSubmission) -> str:
    """sha256(text + email + phone), whitespace-trimmed."""
    combined = "".join(
        (value or "").strip()
        for value in (submission.text, submission.email, submission.phone)
    )
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()


class OdooCRMService:
    """Service for creating leads in Odoo CRM."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_manager: Optional[OdooSessionManager] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize CRM service with configuration."""
        settings = settings or get_settings()
        self.db = settings.odoo_db
        self.api_key = settings.odoo_api_key
        self.appointment_url = settings.odoo_appointment_url
        self.summary_field = settings.odoo_summary_field
        self.reply_field = settings.odoo_reply_field
        self.idempotency_field = settings.odoo_idempotency_field

        self.rpc = OdooRPCClient(
            settings.odoo_base_url, timeout=settings.odoo_timeout, transport=transport
        )
        self.session_manager = session_manager or get_session_manager()

    async def ensure_authenticated(self) -> int:
        return await self.session_manager.ensure_authenticated()

    async def _execute(self, model: str, method: str, args: List[Any],
                       kwargs: Optional[Dict[str, Any]] = None) -> Any:
        """
        Authenticated ``execute_kw`` call.

        Drops the cached session when Odoo rejects the credentials, so the next
        call authenticates again instead of failing forever.
        """
        uid = await self.ensure_authenticated()
        try:
            return await self.rpc.execute_kw(
                self.db, uid, self.api_key, model, method, args, kwargs
            )
        except RemoteApplicationError as e:
            if e.authorization_failure:
                self.session_manager.invalidate()
            raise

    async def resolve_country_id(self, name: Optional[str]) -> Optional[int]:
        """
        Find a res.country id by (partial) name.

        Unknown or empty names return None without calling Odoo. Lookup failures
        are logged and treated as no match.
        """
        name = (name or "").strip()
        if name.lower() in _UNKNOWN_COUNTRY_NAMES:
            return None

        try:
            ids = await self._execute(
                "res.country", "search", [[["name", "ilike", name]]], {"limit": 1}
            )
        except LeadConnectorError as e:
            logger.warning(f"Country lookup failed for '{name}': {e}")
            return None

        if not ids:
            return None
        if not isinstance(ids, list) or not isinstance(ids[0], int) or isinstance(ids[0], bool):
            logger.warning(f"Unexpected country lookup result for '{name}': {ids!r}")
            return None
        return ids[0]

    async def resolve_tag_ids(self, names: Iterable[str]) -> List[int]:
        """Map crm.tag names to ids. Failures are logged and yield no ids."""
        clean = [str(n).strip() for n in names or [] if n and str(n).strip()]
        if not clean:
            return []

        try:
            found = await self._execute(
                "crm.tag",
                "search_read",
                [[["name", "in", clean]]],
                {"fields": ["id", "name"], "limit": len(clean)},
            )
        except LeadConnectorError as e:
            logger.warning(f"Tag lookup failed for {clean}: {e}")
            return []

        if not isinstance(found, list):
            logger.warning(f"Unexpected tag lookup result for {clean}: {found!r}")
            return []

        tags = [tag for tag in found if isinstance(tag, dict)]
        ids = [
            tag["id"] for tag in tags
            if isinstance(tag.get("id"), int) and not isinstance(tag.get("id"), bool)
        ]
        missing = set(clean) - {tag["name"] for tag in tags if isinstance(tag.get("name"), str)}
        if missing:
            logger.info(f"Tags not found in Odoo: {', '.join(sorted(missing))}")
        return ids

    async def create_lead(
        self,
        analysis: LeadAnalysis,
        submission: LeadSubmission,
        enrichment: Optional[EnrichmentResult] = None,
    ) -> int:
        """
        Create a crm.lead record.

        Not idempotent: each call creates a new record, unless
        ODOO_IDEMPOTENCY_FIELD is configured, in which case an existing lead
        carrying the same submission key is returned instead.

        Returns:
            The Odoo id of the lead

        Raises:
            ConfigurationError, AuthenticationError: no usable Odoo session
            RemoteWriteError: transport or Odoo error, or a non-numeric result
        """
        if enrichment is None:
            enrichment = build_enrichment(analysis, submission, self.appointment_url)

        await self.ensure_authenticated()

        try:
            idempotency_key = None
            if self.idempotency_field:
                idempotency_key = compute_idempotency_key(submission)
                existing = await self._find_existing_lead(idempotency_key)
                if existing:
                    logger.info(f"Lead already exists for this submission: {existing}")
                    return existing

            country_id = await self.resolve_country_id(analysis.country)
            tag_ids = await self.resolve_tag_ids(enrichment.tags)

            vals = self._build_lead_values(
                analysis, submission, enrichment, country_id, tag_ids
            )
            if idempotency_key:
                vals[self.idempotency_field] = idempotency_key

            result = await self._execute("crm.lead", "create", [vals])
        except (RemoteWriteError, ConfigurationError, AuthenticationError):
            raise
        except LeadConnectorError as e:
            logger.error(f"Odoo lead creation failed: {e}")
            raise RemoteWriteError(f"Odoo error creating lead: {e}") from e

        if isinstance(result, bool) or not isinstance(result, int):
            logger.error(f"Odoo create returned a non-numeric result: {result!r}")
            raise RemoteWriteError("Odoo did not return a numeric lead id")

        logger.info(f"Lead created in Odoo: {result}")
        return result

    async def _find_existing_lead(self, key: str) -> Optional[int]:
        ids = await self._execute(
            "crm.lead", "search", [[[self.idempotency_field, "=", key]]], {"limit": 1}
        )
        return ids[0] if ids else None

    def _build_lead_values(
        self,
        analysis: LeadAnalysis,
        submission: LeadSubmission,
        enrichment: EnrichmentResult,
        country_id: Optional[int],
        tag_ids: List[int],
    ) -> Dict[str, Any]:
        vals: Dict[str, Any] = {
            "name": analysis.summary or analysis.question or DEFAULT_LEAD_TITLE,
            "contact_name": submission.contact_name or "",
            "email_from": submission.email or "",
            "phone": submission.phone or "",
            "description": self._format_description(analysis, submission),
            "priority": str(enrichment.priority),
            self.summary_field: analysis.summary,
            self.reply_field: enrichment.suggested_reply,
        }

        city = detected_location(analysis)
        if city:
            vals["city"] = city
        if country_id:
            vals["country_id"] = country_id
        if tag_ids:
            # many2many "replace" command
            vals["tag_ids"] = [[6, 0, tag_ids]]
        return vals

    def _format_description(self, analysis: LeadAnalysis,
                            submission: LeadSubmission) -> str:
        """Free-text description with the original message and the AI analysis."""
        detected = json.dumps(analysis.detected_data.as_dict(), ensure_ascii=False)
        description = f"""
Texto original:
{submission.text}

Resumen IA:
{analysis.summary}

Pregunta:
{analysis.question}

Intención: {analysis.intent.value}
País: {analysis.country}
Urgencia: {analysis.urgency.value}
Datos detectados: {detected}

Origen: {submission.origin or ""}
Canal: {submission.channel or ""}
"""
        return description.strip()

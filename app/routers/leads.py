"""
Leads Router - analysis and CRM lead creation endpoints.
Handles web-form leads and call transcripts from the telephony webhook.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status

from app.core.config import get_settings, Settings
from app.core.errors import LeadConnectorError
from app.models.lead import (
    AIPayload,
    AnalyzeAndCreateResponse,
    AnalyzeResponse,
    CallTranscript,
    LeadAnalysis,
    LeadSubmission,
)
from app.services.crm_service import OdooCRMService
from app.services.enrichment import build_enrichment
from app.services.groq_service import GroqEngine, get_groq_engine
from app.services.normalizer import normalize
from app.services.prompt_builder import build_system_prompt, build_user_prompt

logger = logging.getLogger(__name__)

router = APIRouter(tags=["leads"])

CALL_ORIGIN = "telefono"
CALL_CHANNEL = "llamada"
CALL_DEFAULT_NAME = "Llamada entrante"


def get_crm_service(settings: Settings = Depends(get_settings)) -> OdooCRMService:
    """Dependency to get the Odoo CRM writer."""
    return OdooCRMService(settings)


async def analyze_submission(engine: GroqEngine, submission: LeadSubmission) -> LeadAnalysis:
    """Prompt -> LLM -> normalized analysis."""
    raw = await engine.analyze(build_system_prompt(), build_user_prompt(submission))
    analysis = normalize(raw)
    logger.info(
        f"Analysis complete - Intent: {analysis.intent.value}, "
        f"Urgency: {analysis.urgency.value}, Language: {analysis.language.value}"
    )
    return analysis


def _require_text(submission: LeadSubmission):
    if not submission.text or not submission.text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "missing_text",
                "message": "Send at least one of 'text', 'mensaje' or 'message' with content.",
            },
        )


@router.post("/lead/analyze", response_model=AnalyzeResponse)
async def analyze_lead(
    submission: LeadSubmission,
    settings: Settings = Depends(get_settings),
    engine: GroqEngine = Depends(get_groq_engine),
):
    """
    Analyze a lead with the LLM without touching the CRM.

    AI failures never surface as errors here: the caller (usually a workflow
    automation) gets a 200 with ``ai.status == "pending"`` and the failure
    code as ``ai.motive``.
    """
    _require_text(submission)

    try:
        analysis = await analyze_submission(engine, submission)
    except LeadConnectorError as e:
        logger.error(f"[/lead/analyze] Error: {e}")
        return AnalyzeResponse(
            service=settings.app_name, demo=True, ai=AIPayload.pending(e.code)
        )

    return AnalyzeResponse(
        service=settings.app_name, ai=AIPayload.from_analysis(analysis)
    )


@router.post("/lead/analyze-and-create", response_model=AnalyzeAndCreateResponse)
async def analyze_and_create_lead(
    submission: LeadSubmission,
    settings: Settings = Depends(get_settings),
    engine: GroqEngine = Depends(get_groq_engine),
    crm: OdooCRMService = Depends(get_crm_service),
):
    """Analyze a lead and create it in Odoo. Any AI or CRM failure is a 500."""
    _require_text(submission)
    return await _analyze_and_create(
        submission, settings, engine, crm,
        endpoint="/lead/analyze-and-create", error="crm_or_ai_error",
    )


@router.post("/webhooks/zadarma/call", response_model=AnalyzeAndCreateResponse)
async def call_webhook(
    call: CallTranscript,
    settings: Settings = Depends(get_settings),
    engine: GroqEngine = Depends(get_groq_engine),
    crm: OdooCRMService = Depends(get_crm_service),
):
    """Turn a call transcript into an analyzed Odoo lead."""
    transcript = (call.transcript or "").strip()
    if not transcript:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "missing_transcript",
                "message": "Send a 'transcript' field with the call text.",
            },
        )

    submission = LeadSubmission(
        text=transcript,
        contact_name=call.caller_name or CALL_DEFAULT_NAME,
        phone=call.caller_id or "",
        origin=CALL_ORIGIN,
        channel=CALL_CHANNEL,
    )
    return await _analyze_and_create(
        submission, settings, engine, crm,
        endpoint="/webhooks/zadarma/call", error="call_ai_or_crm_error",
        source="zadarma",
    )


async def _analyze_and_create(
    submission: LeadSubmission,
    settings: Settings,
    engine: GroqEngine,
    crm: OdooCRMService,
    endpoint: str,
    error: str,
    source: Optional[str] = None,
) -> AnalyzeAndCreateResponse:
    try:
        analysis = await analyze_submission(engine, submission)
        enrichment = build_enrichment(analysis, submission, settings.odoo_appointment_url)
        lead_id = await crm.create_lead(analysis, submission, enrichment)
    except LeadConnectorError as e:
        logger.error(f"[{endpoint}] Error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": error, "code": e.code, "message": str(e)},
        )

    return AnalyzeAndCreateResponse(
        service=settings.app_name,
        source=source,
        lead_id=lead_id,
        ai=AIPayload.from_analysis(analysis),
        enrichment=enrichment,
    )

"""
Enrichment Engine.
Derives CRM tags, priority and a suggested reply from a normalized analysis.
"""
import logging
from typing import Dict, List, Optional, Union
from app.models.lead import (
    UNKNOWN_COUNTRY,
    EnrichmentResult,
    Intent,
    Language,
    LeadAnalysis,
    LeadSubmission,
    Urgency,
    fold_key,
)

logger = logging.getLogger(__name__)

AI_TAG_PREFIX = "IA:"
REVIEW_TAG = "IA: Revisar manualmente"
VALID_LEAD_TAG = "IA: Lead válido"

INTENT_TAGS: Dict[Intent, str] = {
    Intent.MACHINE: "Máquina de Pizzas y comida",
    Intent.PIZZAS: "Pizza sector Horeca",
    Intent.BOTH: "Ambos",
    Intent.OPERATOR: "Operador vending",
    Intent.SUPPORT: "IA: Soporte técnico",
    Intent.INFO: "IA: Información general",
    Intent.OTHER: REVIEW_TAG,
}

URGENCY_TAGS: Dict[Urgency, str] = {
    Urgency.HIGH: "Urgencia: alta",
    Urgency.MEDIUM: "Urgencia: media",
    Urgency.LOW: "Urgencia: baja",
}

# Keys are accent-folded, lowercase
ORIGIN_TAGS: Dict[str, str] = {
    "web": "Origen: web",
    "email": "Origen: email",
    "telefono": "Origen: teléfono",
    "phone": "Origen: teléfono",
    "red_social": "Origen: redes sociales",
    "redes": "Origen: redes sociales",
    "social": "Origen: redes sociales",
    "cita": "Origen: cita",
}

CHANNEL_TAGS: Dict[str, str] = {
    "formulario": "Canal: formulario",
    "form": "Canal: formulario",
    "llamada": "Canal: llamada",
    "call": "Canal: llamada",
    "whatsapp": "Canal: WhatsApp",
    "instagram": "Canal: Instagram",
    "facebook": "Canal: Facebook",
    "cita": "Canal: cita",
}

WARM_INTENTS = {Intent.MACHINE, Intent.PIZZAS, Intent.BOTH, Intent.OPERATOR}
MACHINE_INTENTS = {Intent.MACHINE, Intent.OPERATOR, Intent.BOTH}
BOOKING_INTENTS = MACHINE_INTENTS | {Intent.INFO}

PRIORITY_BY_URGENCY: Dict[Urgency, int] = {
    Urgency.HIGH: 3,
    Urgency.MEDIUM: 2,
    Urgency.LOW: 1,
}

UNSPECIFIED_VALUES = {"no especifica", "no especificado", "not specified", "unspecified"}

SIGNATURE = "Un saludo,\nEquipo Piznalia / La Pizzerina"


def build_tags(analysis: LeadAnalysis, submission: LeadSubmission) -> List[str]:
    """
    Tag names for the CRM lead.

    Always contains exactly one tag with the ``IA:`` prefix; duplicates are
    removed keeping the first occurrence.
    """
    tags = [INTENT_TAGS.get(analysis.intent, REVIEW_TAG)]

    urgency_tag = URGENCY_TAGS.get(analysis.urgency)
    if urgency_tag:
        tags.append(urgency_tag)

    origin_tag = ORIGIN_TAGS.get(fold_key(submission.origin))
    if origin_tag:
        tags.append(origin_tag)

    channel_tag = CHANNEL_TAGS.get(fold_key(submission.channel))
    if channel_tag:
        tags.append(channel_tag)

    if not _has_ai_tag(tags) and analysis.intent in WARM_INTENTS:
        tags.append(VALID_LEAD_TAG)
    if not _has_ai_tag(tags):
        tags.append(REVIEW_TAG)

    return list(dict.fromkeys(tags))


def _has_ai_tag(tags: List[str]) -> bool:
    return any(tag.startswith(AI_TAG_PREFIX) for tag in tags)


def build_priority(urgency: Union[Urgency, str, None]) -> int:
    """Odoo priority (1=low, 2=medium, 3=high). Unrecognized urgency is low."""
    return PRIORITY_BY_URGENCY.get(Urgency.parse(urgency), 1)


def detected_location(analysis: LeadAnalysis) -> Optional[str]:
    """Location mentioned by the customer, ignoring 'not specified' answers."""
    location = (analysis.detected_data.location or "").strip()
    if not location or location.lower() in UNSPECIFIED_VALUES:
        return None
    return location


def _place(analysis: LeadAnalysis) -> Optional[str]:
    location = detected_location(analysis)
    if location:
        return location
    if analysis.country and analysis.country != UNKNOWN_COUNTRY:
        return analysis.country
    return None


def can_offer_call(analysis: LeadAnalysis, booking_url: str) -> bool:
    """Business rule: offer a call only to non-low-urgency sales or info leads."""
    return bool(booking_url) and analysis.urgency != Urgency.LOW \
        and analysis.intent in BOOKING_INTENTS


def build_suggested_reply(analysis: LeadAnalysis, submission: LeadSubmission,
                          booking_url: str = "") -> str:
    """Draft reply for the sales team, in Spanish for es/ca and English otherwise."""
    name = (submission.contact_name or "").strip()
    if analysis.language in (Language.ES, Language.CA):
        return _spanish_reply(analysis, name, booking_url)
    return _english_reply(analysis, name, booking_url)


def _spanish_reply(analysis: LeadAnalysis, name: str, booking_url: str) -> str:
    greeting = f"Hola {name}," if name else "Hola,"
    place = _place(analysis)
    msg = f"{greeting} gracias por contactar con Piznalia / La Pizzerina.\n\n"

    if analysis.intent in MACHINE_INTENTS:
        msg += ("Hemos recibido tu consulta sobre nuestras máquinas SmartChef24h "
                "y las condiciones para instalarlas")
        if place:
            msg += f" en {place}"
        msg += (". Te enviaremos una propuesta adaptada a tu caso (ubicación, "
                "previsión de ventas y modelo de colaboración).\n")
    elif analysis.intent == Intent.PIZZAS:
        msg += ("Hemos recibido tu interés por nuestras pizzas. Te enviaremos "
                "información sobre catálogo, formatos, precios y condiciones de suministro")
        if place:
            msg += f" para {place}"
        msg += ".\n"
    elif analysis.intent == Intent.SUPPORT:
        msg += ("Hemos recibido tu consulta de soporte técnico. Vamos a revisar el caso "
                "y te responderemos con las instrucciones y pasos a seguir lo antes posible.\n")
    elif analysis.intent == Intent.INFO:
        msg += ("Hemos recibido tu consulta y te responderemos con la información "
                "que necesitas.\n")
    else:
        msg += ("Hemos recibido tu mensaje y lo revisaremos para darte la mejor "
                "respuesta posible.\n")

    if can_offer_call(analysis, booking_url):
        msg += "\nSi lo prefieres, podemos comentarlo en detalle en una llamada.\n"
        msg += f"Puedes agendar una cita directamente aquí: {booking_url}\n"

    msg += f"\n{SIGNATURE}"
    return msg.strip()


def _english_reply(analysis: LeadAnalysis, name: str, booking_url: str) -> str:
    greeting = f"Hello {name}," if name else "Hello,"
    place = _place(analysis)
    msg = f"{greeting} thank you for contacting us.\n\n"

    if analysis.intent in MACHINE_INTENTS:
        msg += ("We will send you information about our vending machines (SmartChef24h) "
                "and commercial conditions")
        if place:
            msg += f" in {place}"
        msg += ".\n"
    elif analysis.intent == Intent.PIZZAS:
        msg += "We will send you information about our pizzas catalog, formats and prices"
        if place:
            msg += f" for {place}"
        msg += ".\n"
    elif analysis.intent == Intent.SUPPORT:
        msg += ("We have received your technical support request and we'll review it "
                "as soon as possible.\n")
    else:
        msg += "We will reply with the information you requested.\n"

    if can_offer_call(analysis, booking_url):
        msg += f"\nIf you prefer, you can book a call here: {booking_url}"
    return msg.strip()


def build_enrichment(analysis: LeadAnalysis, submission: LeadSubmission,
                     booking_url: str = "") -> EnrichmentResult:
    """Tags, priority and suggested reply for one lead."""
    result = EnrichmentResult(
        tags=build_tags(analysis, submission),
        priority=build_priority(analysis.urgency),
        suggested_reply=build_suggested_reply(analysis, submission, booking_url),
    )
    logger.info(
        f"Enrichment - Tags: {', '.join(result.tags)}, Priority: {result.priority}"
    )
    return result

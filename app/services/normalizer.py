"""
Maps the model's loosely structured JSON onto LeadAnalysis.

The prompt asks for Spanish keys, but models occasionally answer with English
ones, so every field is read as primary key -> English key -> default.
"""
from typing import Any, Mapping, Optional
from app.models.lead import (
    UNKNOWN_COUNTRY,
    DetectedData,
    Intent,
    Language,
    LeadAnalysis,
    Urgency,
)

_UNKNOWN_COUNTRY_VALUES = {"", "unknown", "desconocido", "desconocida"}


def _pick(raw: Mapping[str, Any], primary: str, alternate: str) -> Any:
    return raw.get(primary) or raw.get(alternate)


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _detected_data(value: Any) -> DetectedData:
    if not isinstance(value, Mapping):
        return DetectedData()
    return DetectedData(
        quantity=_text(_pick(value, "cantidad", "quantity")),
        location=_text(_pick(value, "ubicacion", "location")),
        timeframe=_text(_pick(value, "plazo", "timeframe")),
    )


def normalize(raw: Mapping[str, Any]) -> LeadAnalysis:
    """Build a LeadAnalysis from raw model output. Never raises."""
    if not isinstance(raw, Mapping):
        raw = {}

    country = _text(_pick(raw, "pais", "country"))
    if country is None or country.lower() in _UNKNOWN_COUNTRY_VALUES:
        country = UNKNOWN_COUNTRY

    return LeadAnalysis(
        intent=Intent.parse(_pick(raw, "intencion", "intent")) or Intent.OTHER,
        language=Language.parse(_pick(raw, "idioma", "language")) or Language.ES,
        country=country,
        urgency=Urgency.parse(_pick(raw, "urgencia", "urgency")) or Urgency.MEDIUM,
        summary=_text(_pick(raw, "resumen", "summary")) or "",
        question=_text(_pick(raw, "pregunta", "question")) or "",
        detected_data=_detected_data(_pick(raw, "datos_detectados", "data")),
        raw=dict(raw),
    )

"""
Lead analysis, submission and enrichment models.
"""
import unicodedata
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


UNKNOWN_COUNTRY = "Unknown"


def fold_key(value: Any) -> str:
    """Lowercase and strip accents so 'Máquina' and 'maquina' compare equal."""
    text = str(value or "").strip().lower()
    return "".join(
        ch for ch in unicodedata.normalize("NFKD", text)
        if not unicodedata.combining(ch)
    )


class _AliasedEnum(str, Enum):
    """String enum that also recognizes the aliases listed in ``_aliases``."""

    @classmethod
    def parse(cls, value: Any):
        """Return the matching member, or None when the value is unrecognized."""
        if isinstance(value, cls):
            return value
        key = fold_key(value)
        if not key:
            return None
        for member in cls:
            if key == member.value:
                return member
        return cls._aliases().get(key)

    @classmethod
    def _aliases(cls) -> Dict[str, "_AliasedEnum"]:
        return {}


class Intent(_AliasedEnum):
    """Classified purpose of the customer's message."""
    MACHINE = "machine"
    PIZZAS = "pizzas"
    BOTH = "both"
    OPERATOR = "operator"
    SUPPORT = "support"
    INFO = "info"
    OTHER = "other"

    @classmethod
    def _aliases(cls):
        return {
            "maquina": cls.MACHINE,
            "maquinas": cls.MACHINE,
            "pizza": cls.PIZZAS,
            "ambos": cls.BOTH,
            "operador": cls.OPERATOR,
            "soporte": cls.SUPPORT,
            "informacion": cls.INFO,
            "otros": cls.OTHER,
            "otro": cls.OTHER,
        }


class Language(_AliasedEnum):
    ES = "es"
    CA = "ca"
    EN = "en"
    FR = "fr"
    PT = "pt"

    @classmethod
    def _aliases(cls):
        return {
            "spanish": cls.ES,
            "espanol": cls.ES,
            "catalan": cls.CA,
            "catala": cls.CA,
            "english": cls.EN,
            "ingles": cls.EN,
            "french": cls.FR,
            "frances": cls.FR,
            "portuguese": cls.PT,
            "portugues": cls.PT,
        }


class Urgency(_AliasedEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def _aliases(cls):
        return {"alta": cls.HIGH, "media": cls.MEDIUM, "baja": cls.LOW}


class DetectedData(BaseModel):
    """Structured hints the model found in the message. Absent keys stay absent."""
    model_config = ConfigDict(frozen=True)

    quantity: Optional[str] = None
    location: Optional[str] = None
    timeframe: Optional[str] = None

    def as_dict(self) -> Dict[str, str]:
        return self.model_dump(exclude_none=True)


class LeadAnalysis(BaseModel):
    """Normalized LLM analysis of a single lead."""
    model_config = ConfigDict(frozen=True)

    intent: Intent = Intent.OTHER
    language: Language = Language.ES
    country: str = UNKNOWN_COUNTRY
    urgency: Urgency = Urgency.MEDIUM
    summary: str = ""
    question: str = ""
    detected_data: DetectedData = Field(default_factory=DetectedData)
    raw: Dict[str, Any] = Field(
        default_factory=dict, description="Verbatim model output, kept for audit"
    )


class LeadSubmission(BaseModel):
    """Inbound lead: free text plus the metadata the form or webhook knows."""
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(
        default="",
        validation_alias=AliasChoices("text", "mensaje", "message", "content"),
    )
    origin: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("origin", "origen", "source")
    )
    channel: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("channel", "canal")
    )
    contact_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("contact_name", "nombre", "name"),
    )
    email: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("email", "email_from")
    )
    phone: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("phone", "telefono")
    )

    @model_validator(mode="before")
    @classmethod
    def first_filled_alias(cls, data: Any) -> Any:
        """
        Take the first non-empty value among each field's aliases.

        Scalars such as numbers are turned into text; containers are left for
        field validation to reject.
        """
        if not isinstance(data, Mapping):
            return data

        values = dict(data)
        for name, field in cls.model_fields.items():
            alias = field.validation_alias
            keys = alias.choices if isinstance(alias, AliasChoices) else [name]
            picked = next((data[key] for key in keys if data.get(key)), None)
            for key in keys:
                values.pop(key, None)
            if picked is None:
                continue
            values[name] = picked if isinstance(picked, (dict, list)) else str(picked)
        return values


class CallTranscript(BaseModel):
    """Webhook payload sent by the telephony provider after a call."""
    model_config = ConfigDict(populate_by_name=True)

    transcript: str = ""
    caller_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("caller_name", "callerName")
    )
    caller_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("caller_id", "callerId")
    )


class EnrichmentResult(BaseModel):
    """CRM metadata derived from an analysis."""
    tags: List[str] = Field(default_factory=list)
    priority: int = Field(1, ge=1, le=3, description="1=low, 2=medium, 3=high")
    suggested_reply: str = ""


class AIPayload(BaseModel):
    """Analysis block returned to HTTP callers."""
    status: str = "ok"
    motive: Optional[str] = None
    summary: str = ""
    intent: Optional[Intent] = None
    language: Optional[Language] = None
    country: Optional[str] = None
    urgency: Optional[Urgency] = None
    question: Optional[str] = None
    detected_data: Dict[str, str] = Field(default_factory=dict)
    raw: Any = None

    @classmethod
    def from_analysis(cls, analysis: LeadAnalysis) -> "AIPayload":
        return cls(
            summary=analysis.summary,
            intent=analysis.intent,
            language=analysis.language,
            country=analysis.country,
            urgency=analysis.urgency,
            question=analysis.question,
            detected_data=analysis.detected_data.as_dict(),
            raw=analysis.raw,
        )

    @classmethod
    def pending(cls, motive: str) -> "AIPayload":
        return cls(
            status="pending",
            motive=motive,
            summary="No se pudo analizar correctamente el lead con IA.",
            raw="",
        )


class AnalyzeResponse(BaseModel):
    """Response of POST /lead/analyze."""
    ok: bool = True
    service: str
    demo: bool = False
    ai: AIPayload


class AnalyzeAndCreateResponse(BaseModel):
    """Response of the endpoints that also write a CRM lead."""
    ok: bool = True
    service: str
    source: Optional[str] = None
    lead_id: int
    ai: AIPayload
    enrichment: EnrichmentResult

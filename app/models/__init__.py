"""Data models for the Lead AI Connector."""
from .lead import (
    UNKNOWN_COUNTRY,
    Intent,
    Language,
    Urgency,
    DetectedData,
    LeadAnalysis,
    LeadSubmission,
    CallTranscript,
    EnrichmentResult,
    AIPayload,
    AnalyzeResponse,
    AnalyzeAndCreateResponse,
)

__all__ = [
    "UNKNOWN_COUNTRY",
    "Intent",
    "Language",
    "Urgency",
    "DetectedData",
    "LeadAnalysis",
    "LeadSubmission",
    "CallTranscript",
    "EnrichmentResult",
    "AIPayload",
    "AnalyzeResponse",
    "AnalyzeAndCreateResponse",
]

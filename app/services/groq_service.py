"""
Groq AI Service - lead analysis through an LLM.
Sends the prompts to Groq and returns the model's raw JSON object.
"""
import json
import logging
import re
from functools import lru_cache
from typing import Any, Dict, Optional
from groq import AsyncGroq, APIConnectionError, APIStatusError, APIError
from app.core.config import get_settings, Settings
from app.core.errors import (
    ConfigurationError,
    EmptyResponseError,
    ParseError,
    TransportError,
)

logger = logging.getLogger(__name__)


class GroqEngine:
    """Async LLM client returning parsed JSON objects."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize Groq client with API key from settings."""
        settings = settings or get_settings()
        self.model = settings.groq_model
        self.temperature = settings.groq_temperature
        self.max_tokens = settings.groq_max_tokens
        self.client: Optional[AsyncGroq] = None
        if settings.groq_api_key:
            self.client = AsyncGroq(
                api_key=settings.groq_api_key,
                timeout=settings.groq_timeout,
            )

    async def analyze(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        """
        Run the prompts through the model and parse its reply.

        Args:
            system_prompt: Fixed analyzer instruction
            user_prompt: Per-request instruction with the customer text

        Returns:
            The JSON object produced by the model

        Raises:
            ConfigurationError: GROQ_API_KEY is not set
            TransportError: Groq unreachable or returned an error status
            EmptyResponseError: the completion had no content
            ParseError: the content is not a JSON object
        """
        if self.client is None:
            raise ConfigurationError("Missing environment variable GROQ_API_KEY")

        logger.info(f"Analyzing lead with Groq ({self.model})")

        try:
            completion = await self.client.chat.completions.create(
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except APIStatusError as e:
            logger.error(f"Groq returned HTTP {e.status_code}")
            raise TransportError(
                "Groq request failed", status_code=e.status_code, body=_response_text(e)
            ) from e
        except APIConnectionError as e:
            logger.error(f"Groq unreachable: {e}")
            raise TransportError(f"Groq unreachable: {e}") from e
        except APIError as e:
            logger.error(f"Groq API error: {e}")
            raise TransportError(f"Groq API error: {e}") from e

        content = ""
        if completion.choices:
            content = (completion.choices[0].message.content or "").strip()
        if not content:
            raise EmptyResponseError("Groq returned empty content")

        return parse_model_json(content)

    async def close(self):
        """Release the HTTP connection pool held by the Groq client."""
        if self.client is not None:
            await self.client.close()


def parse_model_json(content: str) -> Dict[str, Any]:
    """Parse the model reply, tolerating a ```json fence around it."""
    content = _strip_markdown_json(content)
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse Groq JSON response: {e} - {content[:200]}")
        raise ParseError("Model reply is not valid JSON") from e

    if not isinstance(parsed, dict):
        logger.error(f"Groq JSON response is a {type(parsed).__name__}, not an object")
        raise ParseError("Model reply is not a JSON object")
    return parsed


def _strip_markdown_json(text: str) -> str:
    """Remove ```json ... ``` wrapper if present."""
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    return text


def _response_text(error: APIStatusError) -> str:
    return getattr(error.response, "text", "") or str(error)


@lru_cache()
def get_groq_engine() -> GroqEngine:
    """Process-wide LLM client."""
    return GroqEngine()

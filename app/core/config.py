"""
Configuration module for the Lead AI Connector.
Manages environment variables and application settings.
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    app_name: str = "odoo-ai-connector"
    app_version: str = "1.6.0"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Groq AI Configuration
    # An empty key surfaces as ConfigurationError on the first analysis
    groq_api_key: str = ""
    groq_model: str = "llama-3.1-8b-instant"
    groq_temperature: float = 0.1
    groq_max_tokens: int = 512
    groq_timeout: Optional[float] = 30.0

    # Odoo CRM Configuration
    odoo_base_url: str = ""
    odoo_db: str = ""
    odoo_user_email: str = ""
    odoo_api_key: str = ""
    odoo_appointment_url: str = ""
    odoo_timeout: Optional[float] = None

    # Odoo custom fields on crm.lead
    odoo_summary_field: str = "x_resumen_ia"
    odoo_reply_field: str = "x_respuesta_ia"
    odoo_idempotency_field: Optional[str] = None

    @property
    def groq_configured(self) -> bool:
        return bool(self.groq_api_key)

    @property
    def odoo_configured(self) -> bool:
        return all(
            (self.odoo_base_url, self.odoo_db, self.odoo_user_email, self.odoo_api_key)
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Services module for the Lead AI Connector."""
from .groq_service import GroqEngine
from .crm_service import OdooCRMService
from .odoo_session_manager import OdooSessionManager, get_session_manager

__all__ = ["GroqEngine", "OdooCRMService", "OdooSessionManager", "get_session_manager"]

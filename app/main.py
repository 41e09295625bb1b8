"""
Lead AI Connector
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.services.groq_service import get_groq_engine

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    settings = get_settings()

    # Startup
    logger.info(f"Starting {settings.app_name} {settings.app_version}...")
    if not settings.groq_configured:
        logger.warning("GROQ_API_KEY missing - lead analysis will report configuration_error")
    if not settings.odoo_configured:
        logger.warning("Odoo credentials missing - lead creation will fail")

    yield

    # Shutdown
    if get_groq_engine.cache_info().currsize:
        await get_groq_engine().close()
    logger.info("Shutdown complete")


# Initialize FastAPI application
app = FastAPI(
    title="Lead AI Connector",
    description=(
        "Analyzes inbound leads with an LLM and creates enriched leads in Odoo CRM."
    ),
    version=get_settings().app_version,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept"],
)

# Include routers
from app.routers import leads
app.include_router(leads.router)


@app.get("/")
async def root():
    """Service information."""
    settings = get_settings()
    return {
        "ok": True,
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "operational",
        "groq_model": settings.groq_model,
    }


@app.get("/health")
async def health_check():
    """Health check with dependency configuration."""
    settings = get_settings()
    return {
        "ok": True,
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "dependencies": {
            "groq_api": "configured" if settings.groq_configured else "missing",
            "odoo": "configured" if settings.odoo_configured else "missing",
        },
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )

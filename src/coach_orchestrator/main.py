"""FastAPI application for the Coach Orchestrator."""

import logging
from contextlib import asynccontextmanager

from cryptography.fernet import Fernet
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.exception_handlers import register_exception_handlers
from .api.middleware.rate_limit import limiter
from .api.routes import orchestrator
from .config import Settings, get_settings
from .llm.providers import get_llm_metrics
from .observability import is_langfuse_enabled, shutdown_langfuse
from .utils.log_sanitizer import install_log_sanitizer


logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# Must run before any request is logged
install_log_sanitizer()

logger = logging.getLogger(__name__)


def validate_configuration(settings: Settings) -> None:
    """Log which backing services are configured.

    Missing configuration does not stop the service; affected requests
    fail with a configuration error instead.
    """
    if settings.supabase_url and settings.supabase_anon_key:
        logger.info("Supabase: configured")
    else:
        logger.warning("SUPABASE_URL/SUPABASE_ANON_KEY not configured. All orchestrator requests will fail.")

    if settings.openai_api_key:
        logger.info("OPENAI_API_KEY: configured")
    else:
        logger.warning("OPENAI_API_KEY is not configured. The orchestrator will answer 503.")

    if is_langfuse_enabled():
        logger.info("Langfuse tracing: enabled")
    else:
        logger.info("Langfuse tracing: disabled (LANGFUSE_PUBLIC_KEY/LANGFUSE_SECRET_KEY not set)")

    if not settings.credential_encryption_key:
        logger.warning("CREDENTIAL_ENCRYPTION_KEY not configured. Intervals.icu tools will be unavailable.")
        return
    try:
        Fernet(settings.credential_encryption_key.encode())
        logger.info("CREDENTIAL_ENCRYPTION_KEY: configured and validated")
    except ValueError as e:
        logger.error(f"CREDENTIAL_ENCRYPTION_KEY is not a valid Fernet key: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    logger.info(f"Starting Coach Orchestrator v{__version__} (model {settings.llm_model})")
    validate_configuration(settings)
    yield
    logger.info("Shutting down Coach Orchestrator")
    metrics = get_llm_metrics()
    if metrics:
        logger.info(f"LLM usage: {metrics}")
    shutdown_langfuse()


app = FastAPI(
    title="Coach Orchestrator API",
    description="Agentic AI coaching over athlete context and training-platform tools",
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,
)

# Rate limiting
app.state.limiter = limiter

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=settings.cors_methods,
    allow_headers=settings.cors_headers,
)

register_exception_handlers(app)

app.include_router(orchestrator.router, tags=["orchestrator"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)

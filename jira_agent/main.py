from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from jira_agent import __version__
from jira_agent.config import settings, limiter
from jira_agent.api.stories import router as stories_router
from jira_agent.api.workflows import router as workflows_router
from jira_agent.api.voice import router as voice_router
import logging

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown"""
    # Startup
    logger.info("Starting Jira Story Agent API...")

    # Security check: warn if API key is not set in production
    if settings.environment == "production" and not settings.api_key:
        logger.error(
            "SECURITY WARNING: API key authentication is disabled in production! "
            "Set API_KEY environment variable to enable authentication."
        )

    if not (settings.jira_email and settings.jira_api_token and (settings.jira_domain or settings.jira_base_url)):
        logger.warning("Jira credentials are incomplete; issue creation will fail until configured")

    if not settings.is_deepgram_configured():
        logger.info("DEEPGRAM_API_KEY not set; /api/transcribe and /api/speak are disabled")

    yield

    # Shutdown
    logger.info("Shutting down Jira Story Agent API...")


# Create FastAPI app
app = FastAPI(
    title="Jira Story Agent API",
    description="Draft Jira stories with an LLM, approve them, and create issues and subtasks",
    version=__version__,
    lifespan=lifespan,
)

# Add rate limiting middleware
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# Request body size limit middleware (before FastAPI parses JSON)
@app.middleware("http")
async def check_request_size(request: Request, call_next):
    """Reject request bodies that exceed the configured size limit."""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit():
        max_size_bytes = settings.max_request_size_mb * 1024 * 1024
        if int(content_length) > max_size_bytes:
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"detail": f"Request body too large. Maximum size is {settings.max_request_size_mb}MB"},
            )
    response = await call_next(request)
    return response

# CORS middleware - configure based on environment
if settings.cors_origins:
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    _allow_all = cors_origins == ["*"]
else:
    # Empty string means no CORS allowed (require explicit configuration)
    cors_origins = []
    _allow_all = False

if _allow_all and settings.environment == "production":
    logger.warning("CORS is set to allow all origins in production. This is a security risk!")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    # allow_credentials=True is incompatible with allow_origins=["*"]
    allow_credentials=not _allow_all,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)

# Include routers
app.include_router(stories_router, prefix="/api")
app.include_router(workflows_router, prefix="/api")
app.include_router(voice_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Jira Story Agent API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "jira_project": settings.jira_project_key,
        "deepgram": settings.is_deepgram_configured(),
    }

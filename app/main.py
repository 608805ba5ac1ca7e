from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.routers import ai_match, matches

# Import logging and middleware
from app.utils.logging_config import configure_for_environment, get_logger
from app.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestTimingMiddleware,
)
from app.models.ai_settings import load_settings
from app.services.db import create_database, init_indexes

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("ATS Match API starting up...")

    settings = load_settings()
    app.state.settings = settings
    app.state.db = create_database(settings.storage)
    if not settings.gateway.api_key:
        logger.warning("LLM_API_KEY is not set; ai-match requests will be refused")

    try:
        await init_indexes(app.state.db)
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")
        logger.info("Application will continue - pair uniqueness relies on the matches index")

    logger.info("ATS Match API startup completed")

    yield

    logger.info("ATS Match API shutting down...")
    app.state.db.client.close()
    logger.info("ATS Match API shutdown completed")


app = FastAPI(title="ATS Match API", version=VERSION, lifespan=lifespan)

# Middleware added last runs first: the exception handler wraps everything
app.add_middleware(RequestTimingMiddleware, slow_request_threshold=5.0)
app.add_middleware(ExceptionHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    return {"message": "Welcome to the ATS Match API", "version": VERSION, "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    return {"status": "healthy"}


app.include_router(ai_match.router, prefix="/api")
app.include_router(matches.router, prefix="/api")

logger.info("ATS Match API initialized successfully")

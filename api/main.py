"""Main FastAPI application for the StateSurvey API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .dependencies import get_scheduler
from .routers import quota, search, surveys

# Configure loguru
logger.add("logs/api.log", rotation="1 day", retention="7 days")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    logger.info("Starting StateSurvey API...")
    yield
    scheduler = get_scheduler()
    for session in scheduler.store.list_sessions():
        if not session.status.is_terminal:
            scheduler.cancel(session.id)
    await scheduler.wait_all()
    logger.info("Shutting down StateSurvey API...")


app = FastAPI(
    title="StateSurvey API",
    description="50-state statute surveys with trust verification",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(search.router, prefix="/api/v1/search", tags=["search"])
app.include_router(surveys.router, prefix="/api/v1/surveys", tags=["surveys"])
app.include_router(quota.router, prefix="/api/v1/quota", tags=["quota"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "StateSurvey API",
        "version": "1.0.0",
        "status": "healthy",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}

from fastapi import FastAPI
from contextlib import asynccontextmanager
from loguru import logger
from app.api.routes import router
from app.cache import db as cache_db
from app.core.logging import setup_logging

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Initialize resources on startup, cleanup on shutdown.
    """
    # Startup
    setup_logging()
    logger.info("Initializing Job Content Acquirer...")
    cache_db.init_db()
    logger.info("Database initialized successfully")

    yield

    # Shutdown
    logger.info("Shutting down Job Content Acquirer...")

app = FastAPI(
    title="Job Content Acquirer",
    description="API for acquiring raw job-posting content from third-party sites",
    version="1.0.0",
    lifespan=lifespan
)

# Include API routes
app.include_router(router)

@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "service": "Job Content Acquirer",
        "version": "1.0.0",
        "endpoints": {
            "acquire": "POST /acquire",
            "debug_extract": "POST /debug/extract",
            "health": "GET /health",
            "cache_stats": "GET /cache/stats",
            "cache_entry": "DELETE /cache/entry?url=...",
            "cache_clear": "DELETE /cache/clear"
        }
    }

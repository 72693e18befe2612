"""
Voice Order Resolver - Backend Application

Turns noisy Portuguese (Angolan) speech transcripts into structured order
intents matched against each user's catalog.

Run:
    uvicorn main:app --reload
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from config.settings import settings
from core import models, database
from core.dependencies import reset_services
from core.schemas import HealthResponse
from services.voice.config import get_variant_tables
from utils.logging import setup_logging, get_logger
from utils.exceptions import VoiceOrderError

from routers import voice_orders

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and load variant tables before serving; release the engine after."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    async with database.engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    logger.info("Correction and catalog tables ready")

    tables = get_variant_tables()
    logger.info(
        f"Variant tables {tables.locale} v{tables.version}: "
        f"{len(tables.all_known_variants())} known variants, {len(tables.brands)} brands"
    )

    yield

    logger.info("Shutting down")
    reset_services()
    await database.engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Correct, parse and match spoken orders against a product catalog",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(VoiceOrderError)
async def voice_order_exception_handler(request: Request, exc: VoiceOrderError):
    """Map application errors to their status code and a JSON body"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}", extra={"details": exc.details})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(voice_orders.router)


@app.get("/", tags=["Health"])
async def root():
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION
    }


@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check():
    """
    Database reachability.

    Reported as degraded, not failed, when the database is down: correction
    reads fall back to the static variant tables in that case.
    """
    db_healthy = await database.check_database_health()

    return HealthResponse(
        status="healthy" if db_healthy else "degraded",
        database="up" if db_healthy else "down",
        version=settings.APP_VERSION,
    )


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )

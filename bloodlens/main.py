"""
BloodLens API

Upload a blood test report photo, get a structured, consumer-friendly
interpretation back, ask follow-up questions about it, and upgrade to Pro
through Razorpay subscriptions.
"""

from dotenv import load_dotenv
load_dotenv()  # Load .env file FIRST

from contextlib import asynccontextmanager
from datetime import datetime
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bloodlens.api.analyze import router as analyze_router
from bloodlens.api.chat import router as chat_router
from bloodlens.api.reports import router as reports_router
from bloodlens.api.subscriptions import router as subscriptions_router
from bloodlens.core.config import Settings, settings as default_settings
from bloodlens.core.container import Services, build_services
from bloodlens.core.database import init_db
from bloodlens.core.errors import BloodLensError
from bloodlens.utils.metrics import metrics_collector

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or default_settings
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info(f"{settings.PROJECT_NAME} API v{settings.VERSION} STARTING")
        logger.info(f"Started at: {datetime.now()}")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Analysis model: {settings.ANALYSIS_MODEL}, chat model: {settings.CHAT_MODEL}")
        logger.info(f"Razorpay: {'configured' if services.gateway.configured else 'NOT configured'}")
        logger.info(f"Identity: {services.verifier.mode}")
        logger.info("=" * 60)

        await init_db(services.engine)
        yield
        await services.engine.dispose()

    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        version=settings.VERSION,
        description="AI blood report interpretation with freemium gating and Razorpay subscriptions",
        lifespan=lifespan,
    )
    app.state.services = services

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BloodLensError)
    async def bloodlens_error_handler(request: Request, exc: BloodLensError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    app.include_router(analyze_router)
    app.include_router(chat_router)
    app.include_router(subscriptions_router)
    app.include_router(reports_router)

    @app.get("/health")
    async def health():
        return {"ok": True, "version": settings.VERSION, "metrics": metrics_collector.get_summary()}

    return app


app = create_app()

"""
Process-wide collaborators, built once by create_app and held on app.state
for the lifetime of the process.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from bloodlens.core.config import Settings
from bloodlens.core.database import create_engine, create_session_factory
from bloodlens.core.plans import build_plans
from bloodlens.services.ai_service import AIService
from bloodlens.services.analysis_pipeline import AnalysisPipeline
from bloodlens.services.chat_service import ChatService
from bloodlens.services.identity import TokenVerifier
from bloodlens.services.payment_gateway import RazorpayGateway
from bloodlens.services.quota import QuotaTracker
from bloodlens.services.store import ReportStore, UserStore
from bloodlens.services.subscriptions import SubscriptionService


@dataclass
class Services:
    settings: Settings
    plans: Dict[str, Dict[str, Any]]
    engine: AsyncEngine
    verifier: TokenVerifier
    users: UserStore
    reports: ReportStore
    quota: QuotaTracker
    ai: AIService
    gateway: RazorpayGateway
    pipeline: AnalysisPipeline
    subscriptions: SubscriptionService
    chat: ChatService


def build_services(
    settings: Settings,
    verifier: Optional[TokenVerifier] = None,
    ai: Optional[AIService] = None,
    gateway: Optional[RazorpayGateway] = None,
) -> Services:
    """Wire every collaborator. Tests pass fakes for the external ones."""
    engine = create_engine(settings.DATABASE_URL, echo=settings.ENVIRONMENT == "development")
    session_factory = create_session_factory(engine)

    verifier = verifier or TokenVerifier(
        firebase_project_id=settings.FIREBASE_PROJECT_ID,
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    ai = ai or AIService(
        api_key=settings.OPENAI_API_KEY,
        analysis_model=settings.ANALYSIS_MODEL,
        chat_model=settings.CHAT_MODEL,
        analysis_timeout=settings.ANALYSIS_TIMEOUT_SECONDS,
        analysis_max_tokens=settings.ANALYSIS_MAX_TOKENS,
        chat_max_tokens=settings.CHAT_MAX_TOKENS,
    )
    gateway = gateway or RazorpayGateway(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)

    users = UserStore(session_factory)
    reports = ReportStore(session_factory)
    plans = build_plans(settings)
    quota = QuotaTracker(users, plans)

    return Services(
        settings=settings,
        plans=plans,
        engine=engine,
        verifier=verifier,
        users=users,
        reports=reports,
        quota=quota,
        ai=ai,
        gateway=gateway,
        pipeline=AnalysisPipeline(
            verifier=verifier,
            users=users,
            reports=reports,
            quota=quota,
            ai=ai,
            public_base_url=settings.PUBLIC_BASE_URL,
            max_upload_bytes=settings.max_upload_bytes,
            image_max_edge=settings.IMAGE_MAX_EDGE,
            image_quality=settings.IMAGE_JPEG_QUALITY,
        ),
        subscriptions=SubscriptionService(
            verifier=verifier,
            users=users,
            gateway=gateway,
            total_count=settings.SUBSCRIPTION_TOTAL_COUNT,
        ),
        chat=ChatService(reports, ai),
    )

"""
Report ingestion and analysis pipeline.

validate -> create processing report -> normalize image -> model call ->
parse -> complete + share id -> count free usage -> share url
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from bloodlens.core.errors import (
    BadRequest,
    PayloadTooLarge,
    QuotaExceeded,
    Unauthorized,
    UnsupportedMediaType,
    UpstreamFailure,
)
from bloodlens.services.ai_service import AIService
from bloodlens.services.identity import TokenVerifier
from bloodlens.services.image_service import normalize_image, to_data_url
from bloodlens.services.quota import QuotaTracker
from bloodlens.services.report_parser import parse_analysis
from bloodlens.services.store import ReportStore, UserStore

logger = logging.getLogger(__name__)


@dataclass
class UploadedReport:
    """A report upload as received by the analyze endpoint"""
    file_name: str
    content_type: str
    data: bytes
    extracted_text: Optional[str] = None
    age: Optional[str] = None
    gender: Optional[str] = None
    medications: Optional[str] = None


@dataclass
class AnalyzeResult:
    report_id: str
    share_url: str


class AnalysisPipeline:
    def __init__(
        self,
        verifier: TokenVerifier,
        users: UserStore,
        reports: ReportStore,
        quota: QuotaTracker,
        ai: AIService,
        public_base_url: str,
        max_upload_bytes: int = 10 * 1024 * 1024,
        image_max_edge: int = 800,
        image_quality: int = 85,
    ):
        self.verifier = verifier
        self.users = users
        self.reports = reports
        self.quota = quota
        self.ai = ai
        self.public_base_url = public_base_url.rstrip("/")
        self.max_upload_bytes = max_upload_bytes
        self.image_max_edge = image_max_edge
        self.image_quality = image_quality

    def share_url(self, share_id: str) -> str:
        return f"{self.public_base_url}/share/{share_id}"

    def _validate_upload(self, upload: Optional[UploadedReport]):
        if upload is None or not upload.data:
            raise BadRequest("No files uploaded")
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            raise UnsupportedMediaType(f"File type {content_type or 'unknown'} not supported")
        if len(upload.data) > self.max_upload_bytes:
            raise PayloadTooLarge(f"File too large (> {self.max_upload_bytes // (1024 * 1024)} MB)")

    async def analyze(self, token: Optional[str], upload: Optional[UploadedReport]) -> AnalyzeResult:
        # Validation; nothing is persisted until every check passes
        self._validate_upload(upload)
        if not token:
            raise Unauthorized()
        identity = await self.verifier.verify(token)

        user = await self.users.get_or_create(identity.uid, identity.email)
        if not self.quota.may_analyze(user):
            logger.info(f"[Analyze] Quota exceeded for user {user.uid}")
            raise QuotaExceeded()

        report = await self.reports.create_processing(user.uid, upload.file_name)
        logger.info(f"[Analyze] Starting report {report.report_id} for user {user.uid}")

        try:
            jpeg = await asyncio.to_thread(
                normalize_image, upload.data, self.image_max_edge, self.image_quality
            )

            medications = ", ".join(m for m in (upload.medications, user.current_medications) if m)
            patient_context = AIService.format_patient_context(
                age=upload.age,
                gender=upload.gender,
                medications=medications,
                conditions=user.chronic_conditions,
            )
            raw = await self.ai.analyze_report(to_data_url(jpeg), upload.extracted_text, patient_context)

            analysis = parse_analysis(raw)
            completed = report.complete(analysis, share_id=str(uuid.uuid4()))
            await self.reports.save_complete(completed)

            if not user.pro:
                await self.quota.record_usage(user.uid)

        except Exception as e:
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            logger.error(f"[Analyze] FATAL ERROR for report {report.report_id}: {message}", exc_info=True)
            try:
                await self.reports.save_failed(report.fail(message))
            except Exception as db_err:
                logger.error(f"[Analyze] Failed to log error to DB: {db_err}")
            raise UpstreamFailure(f"Server error: {message}") from e

        logger.info(f"[Analyze] Report {report.report_id} complete")
        return AnalyzeResult(report_id=report.report_id, share_url=self.share_url(completed.share_id))

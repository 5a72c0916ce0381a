"""
Report upload and analysis endpoint
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from bloodlens.api.deps import get_bearer_token, get_services
from bloodlens.core.container import Services
from bloodlens.core.errors import BloodLensError
from bloodlens.schemas.responses import AnalyzeResponse, ErrorResponse
from bloodlens.services.analysis_pipeline import UploadedReport

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analyze"])


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse},
               403: {"model": ErrorResponse}, 413: {"model": ErrorResponse},
               500: {"model": ErrorResponse}},
)
async def analyze(
    file: Optional[UploadFile] = File(None),
    extractedText: Optional[str] = Form(None),
    userAge: Optional[str] = Form(None),
    userGender: Optional[str] = Form(None),
    medications: Optional[str] = Form(None),
    token: Optional[str] = Depends(get_bearer_token),
    services: Services = Depends(get_services),
):
    """
    Analyze an uploaded blood report image.

    Multipart form: `file` (image/*), optional `extractedText` (client OCR
    hint), `userAge`, `userGender`, `medications`. Requires a bearer token.
    The report row is visible with status=processing while the model works.
    """
    upload = None
    if file is not None:
        # Read one byte past the limit so oversize uploads are detectable
        data = await file.read(services.settings.max_upload_bytes + 1)
        upload = UploadedReport(
            file_name=file.filename or "report",
            content_type=file.content_type or "",
            data=data,
            extracted_text=extractedText,
            age=userAge,
            gender=userGender,
            medications=medications,
        )

    try:
        result = await services.pipeline.analyze(token, upload)
    except BloodLensError:
        raise
    except Exception as e:
        logger.error(f"[API Analyze] Unexpected error: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})

    return AnalyzeResponse(reportId=result.report_id, shareUrl=result.share_url)

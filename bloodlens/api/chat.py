"""
Follow-up chat endpoint
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from bloodlens.api.deps import get_services
from bloodlens.core.container import Services
from bloodlens.schemas.requests import ChatRequest
from bloodlens.schemas.responses import ChatResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(request: Request, services: Services = Depends(get_services)):
    """
    Answer a question about a report. Body: `{reportId, messages: [{role, content}]}`.
    No authentication; a missing report just means no context. Any failure is a 500.
    """
    try:
        payload = ChatRequest.model_validate(await request.json())
        reply = await services.chat.reply(
            payload.reportId,
            [m.model_dump() for m in payload.messages],
        )
    except Exception as e:
        logger.error(f"[API Chat] Error: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})

    return ChatResponse(response=reply)

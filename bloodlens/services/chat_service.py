"""Follow-up chat grounded on a stored report. Stateless: callers resend the transcript."""

import json
import logging
from typing import Any, Dict, List, Optional

from bloodlens.services.ai_service import AIService
from bloodlens.services.report_state import CompletedReport
from bloodlens.services.store import ReportStore

logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = """You are a warm, empathetic health assistant helping a patient understand their blood report.

PATIENT'S REPORT DATA (JSON):
{report_context}

Guidelines:
1. Reference specific values from the report when answering.
2. Be reassuring; patients are often anxious about their results.
3. Never make a diagnosis. Recommend consulting their doctor for medical decisions.
4. Keep answers short (a few sentences) unless the patient asks for detail.
5. If asked about a test that is not in the report, say it was not included.
6. If the question is unrelated to their health or this report, politely steer back to the report."""


def report_context(report: Optional[CompletedReport]) -> Dict[str, Any]:
    """The subset of a report the assistant is grounded on; {} when unavailable"""
    if not isinstance(report, CompletedReport):
        return {}
    analysis = report.analysis
    return {
        "overallScore": analysis.overall_score,
        "riskLevel": analysis.risk_level,
        "summary": analysis.summary,
        "tests": [
            {k: t.get(k) for k in ("test", "value", "unit", "range", "flag", "advice")}
            for t in analysis.tests
        ],
        "futurePredictions": analysis.future_predictions,
        "medicationAlerts": analysis.medication_alerts,
        "supplements": analysis.supplements,
        "nutritionFocus": analysis.nutrition.get("focus", ""),
        "lifestyle": analysis.lifestyle,
    }


class ChatService:
    def __init__(self, reports: ReportStore, ai: AIService):
        self.reports = reports
        self.ai = ai

    async def build_system_prompt(self, report_id: Optional[str]) -> str:
        report = await self.reports.get(report_id) if report_id else None
        if report_id and report is None:
            logger.info(f"[Chat] Report {report_id} not found, answering without context")
        context = report_context(report)
        return CHAT_SYSTEM_PROMPT.format(report_context=json.dumps(context, ensure_ascii=False, indent=2))

    async def reply(self, report_id: Optional[str], messages: List[Dict[str, str]]) -> str:
        system_prompt = await self.build_system_prompt(report_id)
        transcript = [{"role": m["role"], "content": m["content"]} for m in messages]
        return await self.ai.chat(system_prompt, transcript)

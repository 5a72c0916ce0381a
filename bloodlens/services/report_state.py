"""
Report lifecycle: processing -> complete | error.

Terminal states can only be built from a ProcessingReport, and they expose
no transitions of their own, so a report cannot move backwards or change
its outcome once decided.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class ReportAnalysis:
    """Fully populated analysis, the output of report_parser.parse_analysis"""
    summary: str
    recommendation: str
    overall_score: float
    risk_level: str
    tests: List[Dict[str, Any]] = field(default_factory=list)
    health_goals: List[str] = field(default_factory=list)
    nutrition: Dict[str, Any] = field(default_factory=dict)
    lifestyle: Dict[str, str] = field(default_factory=dict)
    supplements: List[Dict[str, Any]] = field(default_factory=list)
    future_predictions: List[Dict[str, Any]] = field(default_factory=list)
    medication_alerts: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "recommendation": self.recommendation,
            "overallScore": self.overall_score,
            "riskLevel": self.risk_level,
            "tests": self.tests,
            "healthGoals": self.health_goals,
            "nutrition": self.nutrition,
            "lifestyle": self.lifestyle,
            "supplements": self.supplements,
            "futurePredictions": self.future_predictions,
            "medicationAlerts": self.medication_alerts,
        }


@dataclass(frozen=True)
class CompletedReport:
    report_id: str
    user_id: str
    file_name: str
    analysis: ReportAnalysis
    share_id: str
    status = "complete"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reportId": self.report_id,
            "userId": self.user_id,
            "fileName": self.file_name,
            "status": self.status,
            "shareId": self.share_id,
            **self.analysis.to_dict(),
        }


@dataclass(frozen=True)
class FailedReport:
    report_id: str
    user_id: str
    file_name: str
    error: str
    status = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reportId": self.report_id,
            "userId": self.user_id,
            "fileName": self.file_name,
            "status": self.status,
            "error": self.error,
        }


@dataclass(frozen=True)
class ProcessingReport:
    report_id: str
    user_id: str
    file_name: str
    status = "processing"

    def complete(self, analysis: ReportAnalysis, share_id: str) -> CompletedReport:
        return CompletedReport(
            report_id=self.report_id,
            user_id=self.user_id,
            file_name=self.file_name,
            analysis=analysis,
            share_id=share_id,
        )

    def fail(self, message: str) -> FailedReport:
        return FailedReport(
            report_id=self.report_id,
            user_id=self.user_id,
            file_name=self.file_name,
            error=message or "Unknown error",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reportId": self.report_id,
            "userId": self.user_id,
            "fileName": self.file_name,
            "status": self.status,
        }


ReportState = Union[ProcessingReport, CompletedReport, FailedReport]


def state_from_row(row) -> ReportState:
    """Rebuild the lifecycle variant from a stored reports row"""
    if row.status == CompletedReport.status:
        analysis = ReportAnalysis(
            summary=row.summary or "",
            recommendation=row.recommendation or "",
            overall_score=row.overall_score if row.overall_score is not None else 5,
            risk_level=row.risk_level or "moderate",
            tests=row.tests or [],
            health_goals=row.health_goals or [],
            nutrition=row.nutrition or {},
            lifestyle=row.lifestyle or {},
            supplements=row.supplements or [],
            future_predictions=row.future_predictions or [],
            medication_alerts=row.medication_alerts or [],
        )
        return CompletedReport(row.report_id, row.user_id, row.file_name, analysis, row.share_id)
    if row.status == FailedReport.status:
        return FailedReport(row.report_id, row.user_id, row.file_name, row.error or "")
    return ProcessingReport(row.report_id, row.user_id, row.file_name)


def created_at_of(row) -> Optional[str]:
    return row.created_at.isoformat() if row.created_at else None

"""
Persistence for the users and reports tables.

Every method opens its own short session; handlers share no session state.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from bloodlens.core.errors import IllegalTransition
from bloodlens.models.report import Report
from bloodlens.models.user import User
from bloodlens.services.report_state import (
    CompletedReport,
    FailedReport,
    ProcessingReport,
    ReportState,
    created_at_of,
    state_from_row,
)

logger = logging.getLogger(__name__)


class UserStore:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get(self, uid: str) -> Optional[User]:
        async with self.session_factory() as session:
            return await session.get(User, uid)

    async def get_or_create(self, uid: str, email: Optional[str] = None) -> User:
        """Load the user, creating the record on first sight"""
        async with self.session_factory() as session:
            user = await session.get(User, uid)
            if user:
                return user

            user = User(uid=uid, email=email, pro=False, free_uploads_used=0)
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                # Created concurrently by another request
                await session.rollback()
                return await session.get(User, uid)

            logger.info(f"[UserStore] Created user {uid}")
            return user

    async def record_usage(self, uid: str) -> int:
        """
        Increment free_uploads_used by one in a single transaction.

        The increment is computed by the database, so two concurrent
        completions for the same user both count.

        Returns:
            The counter value after the increment
        """
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(User)
                    .where(User.uid == uid)
                    .values(free_uploads_used=User.free_uploads_used + 1)
                )
                used = await session.scalar(select(User.free_uploads_used).where(User.uid == uid))

        logger.info(f"[UserStore] User {uid} free uploads used: {used}")
        return used

    async def activate_pro(self, uid: str, plan: Optional[str], sub_id: str) -> User:
        """Merge the entitlement fields onto the user, creating the record if absent"""
        async with self.session_factory() as session:
            async with session.begin():
                user = await session.get(User, uid)
                if user is None:
                    user = User(uid=uid, free_uploads_used=0)
                    session.add(user)
                user.pro = True
                user.plan = plan
                user.sub_id = sub_id
                user.sub_start = func.now()
            await session.refresh(user)

        logger.info(f"[UserStore] User {uid} upgraded to {plan} via {sub_id}")
        return user

    async def update_profile(
        self,
        uid: str,
        email: Optional[str] = None,
        current_medications: Optional[str] = None,
        chronic_conditions: Optional[str] = None,
    ) -> User:
        async with self.session_factory() as session:
            async with session.begin():
                user = await session.get(User, uid)
                if user is None:
                    user = User(uid=uid, email=email, pro=False, free_uploads_used=0)
                    session.add(user)
                if current_medications is not None:
                    user.current_medications = current_medications
                if chronic_conditions is not None:
                    user.chronic_conditions = chronic_conditions
            return user


class ReportStore:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def create_processing(self, user_id: str, file_name: str) -> ProcessingReport:
        report = ProcessingReport(report_id=str(uuid.uuid4()), user_id=user_id, file_name=file_name)
        async with self.session_factory() as session:
            async with session.begin():
                session.add(Report(
                    report_id=report.report_id,
                    user_id=user_id,
                    file_name=file_name,
                    status=report.status,
                ))
        return report

    async def _finish(self, report_id: str, values: Dict[str, Any]):
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Report)
                    .where(Report.report_id == report_id, Report.status == ProcessingReport.status)
                    .values(**values, updated_at=func.now())
                )
                if result.rowcount != 1:
                    raise IllegalTransition(f"Report {report_id} is not processing")

    async def save_complete(self, report: CompletedReport):
        analysis = report.analysis
        await self._finish(report.report_id, {
            "status": report.status,
            "summary": analysis.summary,
            "recommendation": analysis.recommendation,
            "overall_score": analysis.overall_score,
            "risk_level": analysis.risk_level,
            "tests": analysis.tests,
            "health_goals": analysis.health_goals,
            "nutrition": analysis.nutrition,
            "lifestyle": analysis.lifestyle,
            "supplements": analysis.supplements,
            "future_predictions": analysis.future_predictions,
            "medication_alerts": analysis.medication_alerts,
            "share_id": report.share_id,
        })

    async def save_failed(self, report: FailedReport):
        await self._finish(report.report_id, {"status": report.status, "error": report.error})

    async def get(self, report_id: str) -> Optional[ReportState]:
        async with self.session_factory() as session:
            row = await session.get(Report, report_id)
            return state_from_row(row) if row else None

    async def get_by_share_id(self, share_id: str) -> Optional[CompletedReport]:
        async with self.session_factory() as session:
            row = await session.scalar(
                select(Report).where(Report.share_id == share_id, Report.status == CompletedReport.status)
            )
            return state_from_row(row) if row else None

    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """History entries, newest first"""
        async with self.session_factory() as session:
            rows = (await session.scalars(
                select(Report).where(Report.user_id == user_id).order_by(Report.created_at.desc())
            )).all()

        return [
            {
                "reportId": row.report_id,
                "fileName": row.file_name,
                "status": row.status,
                "overallScore": row.overall_score,
                "riskLevel": row.risk_level,
                "createdAt": created_at_of(row),
            }
            for row in rows
        ]

    async def delete(self, report_id: str, user_id: str) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(Report).where(Report.report_id == report_id, Report.user_id == user_id)
                )
            return result.rowcount == 1

    async def count(self) -> int:
        async with self.session_factory() as session:
            return await session.scalar(select(func.count()).select_from(Report))

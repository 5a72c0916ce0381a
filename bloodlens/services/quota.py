"""Free tier quota and pro entitlement checks"""

import logging
from typing import Any, Dict

from bloodlens.core.plans import get_plan
from bloodlens.models.user import User
from bloodlens.services.store import UserStore

logger = logging.getLogger(__name__)


class QuotaTracker:
    def __init__(self, users: UserStore, plans: Dict[str, Dict[str, Any]]):
        self.users = users
        self.plans = plans
        self.free_limit = plans["free"]["analyses_limit"]

    def may_analyze(self, user: User) -> bool:
        """Pro users are unlimited; free users get free_limit analyses, ever"""
        if user.pro:
            return True
        return (user.free_uploads_used or 0) < self.free_limit

    async def record_usage(self, user_id: str) -> int:
        """Count one successful free analysis. Call only after completion."""
        return await self.users.record_usage(user_id)

    def usage_summary(self, user: User) -> Dict[str, Any]:
        used = user.free_uploads_used or 0
        plan_key = user.plan or ("pro" if user.pro else "free")
        plan = get_plan(self.plans, plan_key) or self.plans["pro" if user.pro else "free"]
        return {
            "pro": bool(user.pro),
            "plan": plan_key,
            "planName": plan["name"],
            "freeUploadsUsed": used,
            "freeUploadsLimit": self.free_limit,
            # None means unlimited
            "remaining": None if user.pro else max(self.free_limit - used, 0),
        }

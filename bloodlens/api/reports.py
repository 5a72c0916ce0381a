"""
Report history, share links and the user's profile/usage
"""

import logging

from fastapi import APIRouter, Depends

from bloodlens.api.deps import get_identity, get_services
from bloodlens.core.container import Services
from bloodlens.core.errors import ReportNotFound
from bloodlens.schemas.requests import ProfileUpdateRequest
from bloodlens.schemas.responses import UsageResponse
from bloodlens.services.identity import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"])


@router.get("/reports")
async def list_reports(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    """The caller's reports, newest first"""
    return {"reports": await services.reports.list_for_user(identity.uid)}


@router.get("/reports/{report_id}")
async def get_report(
    report_id: str,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    report = await services.reports.get(report_id)
    # Someone else's report looks the same as a missing one
    if report is None or report.user_id != identity.uid:
        raise ReportNotFound()
    return report.to_dict()


@router.delete("/reports/{report_id}")
async def delete_report(
    report_id: str,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    if not await services.reports.delete(report_id, identity.uid):
        raise ReportNotFound()
    logger.info(f"[API Reports] User {identity.uid} deleted report {report_id}")
    return {"deleted": report_id}


@router.get("/share/{share_id}")
async def get_shared_report(share_id: str, services: Services = Depends(get_services)):
    """Read-only view for anyone holding the share link"""
    report = await services.reports.get_by_share_id(share_id)
    if report is None:
        raise ReportNotFound()
    shared = report.to_dict()
    shared.pop("userId", None)
    return shared


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    user = await services.users.get_or_create(identity.uid, identity.email)
    return services.quota.usage_summary(user)


@router.get("/profile")
async def get_profile(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    user = await services.users.get_or_create(identity.uid, identity.email)
    return user.to_dict()


@router.put("/profile")
async def update_profile(
    request: ProfileUpdateRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    user = await services.users.update_profile(
        identity.uid,
        email=identity.email,
        current_medications=request.currentMedications,
        chronic_conditions=request.chronicConditions,
    )
    return user.to_dict()

"""
Razorpay subscription endpoints: create -> (checkout in browser) -> activate
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from bloodlens.api.deps import get_bearer_token, get_services
from bloodlens.core.container import Services
from bloodlens.core.errors import BloodLensError
from bloodlens.core.plans import public_plans
from bloodlens.schemas.requests import (
    ActivateSubscriptionRequest,
    CheckSubscriptionRequest,
    CreateSubscriptionRequest,
)
from bloodlens.schemas.responses import (
    ActivateSubscriptionResponse,
    CheckSubscriptionResponse,
    CreateSubscriptionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["subscriptions"])


@router.get("/plans")
async def list_plans(services: Services = Depends(get_services)):
    """Plans for the pricing page"""
    return {"plans": public_plans(services.plans)}


@router.post("/create-subscription", response_model=CreateSubscriptionResponse)
async def create_subscription(
    request: CreateSubscriptionRequest,
    token: Optional[str] = Depends(get_bearer_token),
    services: Services = Depends(get_services),
):
    try:
        subscription_id = await services.subscriptions.create_subscription(
            token, request.planId, request.planName
        )
    except BloodLensError:
        raise
    except Exception as e:
        logger.error(f"[API Subscriptions] Create failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to create subscription"})

    return CreateSubscriptionResponse(subscriptionId=subscription_id)


@router.post("/activate-subscription", response_model=ActivateSubscriptionResponse)
async def activate_subscription(
    request: ActivateSubscriptionRequest,
    token: Optional[str] = Depends(get_bearer_token),
    services: Services = Depends(get_services),
):
    try:
        await services.subscriptions.activate(
            token, request.subscriptionId, request.paymentId, request.signature
        )
    except BloodLensError:
        raise
    except Exception as e:
        logger.error(f"[API Subscriptions] Activation failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to activate subscription"})

    return ActivateSubscriptionResponse()


@router.post("/check-subscription", response_model=CheckSubscriptionResponse)
async def check_subscription(
    request: CheckSubscriptionRequest,
    token: Optional[str] = Depends(get_bearer_token),
    services: Services = Depends(get_services),
):
    try:
        active = await services.subscriptions.check(token, request.uid)
    except BloodLensError:
        raise
    except Exception as e:
        logger.error(f"[API Subscriptions] Check failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to check subscription"})

    return CheckSubscriptionResponse(active=active)

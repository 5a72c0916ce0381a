"""
Razorpay subscriptions integration (REST API over httpx)

Setup:
1. Create the plans in the Razorpay dashboard (or through the plans API)
2. Set environment variables:
   - RAZORPAY_KEY_ID
   - RAZORPAY_KEY_SECRET
   - RAZORPAY_PRO_PLAN_ID / RAZORPAY_FAMILY_PLAN_ID
"""

import logging
from typing import Any, Dict, Optional

import httpx

from bloodlens.core.errors import GatewayNotConfigured, InvalidPlan, UpstreamFailure
from bloodlens.utils.metrics import track_execution

logger = logging.getLogger(__name__)

RAZORPAY_API_URL = "https://api.razorpay.com/v1"


class RazorpayGateway:
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = RAZORPAY_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    async def _request(self, method: str, path: str, json: Dict[str, Any] = None) -> httpx.Response:
        if not self.configured:
            raise GatewayNotConfigured(
                "Razorpay is not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET"
            )
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.key_id, self.key_secret),
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            return await client.request(method, path, json=json)

    @staticmethod
    def _error_code(response: httpx.Response) -> str:
        try:
            return (response.json().get("error") or {}).get("code", "")
        except ValueError:
            return ""

    @track_execution
    async def create_subscription(self, plan_id: str, total_count: int, notes: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = await self._request("POST", "/subscriptions", json={
                "plan_id": plan_id,
                "total_count": total_count,
                "customer_notify": 1,
                "notes": notes,
            })
        except httpx.HTTPError as e:
            logger.error(f"[Razorpay] Failed to create subscription: {e}")
            raise UpstreamFailure("Failed to create subscription")

        if response.status_code == 400 and self._error_code(response) == "BAD_REQUEST_ERROR":
            logger.error(f"[Razorpay] Bad request creating subscription for plan {plan_id}: {response.text}")
            raise InvalidPlan(f"Invalid plan ID: {plan_id}. Please check dashboard.")
        if response.status_code >= 400:
            logger.error(f"[Razorpay] Create subscription failed ({response.status_code}): {response.text}")
            raise UpstreamFailure("Failed to create subscription")

        subscription = response.json()
        logger.info(f"[Razorpay] Created subscription {subscription.get('id')} for plan {plan_id}")
        return subscription

    @track_execution
    async def fetch_subscription(self, subscription_id: str) -> Dict[str, Any]:
        try:
            response = await self._request("GET", f"/subscriptions/{subscription_id}")
        except httpx.HTTPError as e:
            logger.error(f"[Razorpay] Failed to fetch subscription {subscription_id}: {e}")
            raise UpstreamFailure("Failed to fetch subscription")

        if response.status_code >= 400:
            logger.error(f"[Razorpay] Fetch subscription {subscription_id} failed ({response.status_code}): {response.text}")
            raise UpstreamFailure("Failed to fetch subscription")
        return response.json()

"""
Subscription activation handshake.

1. create: open a Razorpay subscription tagged with the user id and plan
2. the browser runs Razorpay checkout and gets back
   (subscription_id, payment_id, signature)
3. activate: verify the signature, the subscription status and the user
   binding, then mark the user pro

There is no webhook, so each activation check stands alone: the signature
proves the payment, the status lookup proves it is current, the notes
prove whose it is.
"""

import hashlib
import hmac
import logging

from bloodlens.core.errors import (
    BadRequest,
    InvalidSignature,
    SubscriptionNotActive,
    UserMismatch,
)
from bloodlens.services.identity import TokenVerifier
from bloodlens.services.payment_gateway import RazorpayGateway
from bloodlens.services.store import UserStore

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("active", "authenticated")


def subscription_signature(secret: str, payment_id: str, subscription_id: str) -> str:
    """HMAC-SHA256 over "{payment_id}|{subscription_id}", hex encoded"""
    message = f"{payment_id}|{subscription_id}"
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_signature(secret: str, payment_id: str, subscription_id: str, signature: str) -> bool:
    expected = subscription_signature(secret, payment_id, subscription_id)
    return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))


class SubscriptionService:
    def __init__(
        self,
        verifier: TokenVerifier,
        users: UserStore,
        gateway: RazorpayGateway,
        total_count: int = 12,
    ):
        self.verifier = verifier
        self.users = users
        self.gateway = gateway
        self.total_count = total_count

    async def create_subscription(self, token: str, plan_id: str, plan_name: str = "") -> str:
        identity = await self.verifier.verify(token)
        if not plan_id:
            raise BadRequest("Plan ID required")

        logger.info(f"[Subscriptions] Creating subscription: plan={plan_id} user={identity.uid} name={plan_name}")
        subscription = await self.gateway.create_subscription(
            plan_id,
            self.total_count,
            notes={"userId": identity.uid, "plan": plan_name or ""},
        )
        return subscription["id"]

    async def activate(self, token: str, subscription_id: str, payment_id: str, signature: str):
        identity = await self.verifier.verify(token)

        if not subscription_id or not payment_id or not signature:
            raise BadRequest("subscriptionId, paymentId and signature are required")

        if not verify_signature(self.gateway.key_secret, payment_id, subscription_id, signature):
            logger.warning(f"[Subscriptions] Invalid signature for {subscription_id} from user {identity.uid}")
            raise InvalidSignature()

        subscription = await self.gateway.fetch_subscription(subscription_id)
        status = subscription.get("status")
        if status not in ACTIVE_STATUSES:
            logger.warning(f"[Subscriptions] Subscription {subscription_id} has status {status}")
            raise SubscriptionNotActive()

        notes = subscription.get("notes")
        if not isinstance(notes, dict):
            # Razorpay returns [] for empty notes
            notes = {}
        if notes.get("userId") != identity.uid:
            logger.warning(f"[Subscriptions] Subscription {subscription_id} does not belong to user {identity.uid}")
            raise UserMismatch()

        await self.users.activate_pro(identity.uid, plan=notes.get("plan"), sub_id=subscription_id)
        logger.info(f"[Subscriptions] PRO activated for user {identity.uid} via {subscription_id}")

    async def check(self, token: str, uid: str) -> bool:
        identity = await self.verifier.verify(token)
        if uid and uid != identity.uid:
            raise UserMismatch()
        user = await self.users.get(identity.uid)
        return bool(user and user.pro)

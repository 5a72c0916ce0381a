"""
Domain errors. Each carries the HTTP status the API layer answers with,
rendered as {"error": message} by the handler registered in main.py.
"""


class BloodLensError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(BloodLensError):
    status_code = 400
    default_message = "Bad request"


class UnsupportedMediaType(BadRequest):
    default_message = "File type not supported"


class InvalidSignature(BadRequest):
    default_message = "Invalid signature - possible tampering"


class SubscriptionNotActive(BadRequest):
    default_message = "Subscription not active"


class InvalidPlan(BadRequest):
    default_message = "Invalid plan ID"


class Unauthorized(BloodLensError):
    status_code = 401
    default_message = "Unauthorized"


class QuotaExceeded(BloodLensError):
    status_code = 403
    default_message = "Upgrade to Pro for more uploads"


class UserMismatch(BloodLensError):
    status_code = 403
    default_message = "User mismatch"


class ReportNotFound(BloodLensError):
    status_code = 404
    default_message = "Report not found"


class PayloadTooLarge(BloodLensError):
    status_code = 413
    default_message = "File too large"


class UpstreamFailure(BloodLensError):
    status_code = 500
    default_message = "Upstream service failed"


class GatewayNotConfigured(BloodLensError):
    status_code = 503
    default_message = "Payment gateway is not configured"


class IllegalTransition(BloodLensError):
    status_code = 409
    default_message = "Report is no longer processing"

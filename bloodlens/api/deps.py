from typing import Optional

from fastapi import Header, Request

from bloodlens.core.container import Services
from bloodlens.core.errors import Unauthorized
from bloodlens.services.identity import Identity, bearer_token


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Token from the Authorization header, None when absent or malformed.
    Verification happens in the services so each endpoint keeps its own check order."""
    try:
        return bearer_token(authorization)
    except Unauthorized:
        return None


async def get_identity(request: Request, authorization: Optional[str] = Header(None)) -> Identity:
    services = get_services(request)
    return await services.verifier.verify(bearer_token(authorization))

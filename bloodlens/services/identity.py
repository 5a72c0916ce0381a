"""
Bearer token verification.

In production the browser signs in with Firebase Auth and sends its ID
token. Those are RS256 JWTs signed with Google's rotating keys, verified
here with PyJWT against the published JWKS. Without a Firebase project
configured, tokens are HS256 JWTs signed with JWT_SECRET_KEY, which is what
local development and the test suite use. HS256 mode rejects every token
until JWT_SECRET_KEY is set.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt import PyJWKClient

from bloodlens.core.errors import Unauthorized

logger = logging.getLogger(__name__)

FIREBASE_JWKS_URL = "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
FIREBASE_ISSUER = "https://securetoken.google.com/"


@dataclass(frozen=True)
class Identity:
    uid: str
    email: Optional[str] = None


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an `Authorization: Bearer <token>` header"""
    if not authorization:
        raise Unauthorized()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized()
    return token.strip()


class TokenVerifier:
    """Verifies identity tokens and returns the subject they were issued for"""

    def __init__(
        self,
        firebase_project_id: str = "",
        secret_key: str = "",
        algorithm: str = "HS256",
        jwks_client: Optional[PyJWKClient] = None,
    ):
        self.firebase_project_id = firebase_project_id
        self.secret_key = secret_key
        self.algorithm = algorithm
        if firebase_project_id:
            self._jwks_client = jwks_client or PyJWKClient(FIREBASE_JWKS_URL)
        else:
            self._jwks_client = None

    @property
    def mode(self) -> str:
        if self._jwks_client is not None:
            return f"Firebase {self.firebase_project_id}"
        return "local JWT" if self.secret_key else "NOT configured"

    async def verify(self, token: str) -> Identity:
        if not token:
            raise Unauthorized()
        if self._jwks_client is None and not self.secret_key:
            logger.error("[Identity] JWT_SECRET_KEY is not set, rejecting token")
            raise Unauthorized("Token verification is not configured")

        try:
            if self._jwks_client is not None:
                # Key lookup may fetch Google's JWKS over the network
                payload = await asyncio.to_thread(self._verify_firebase, token)
            else:
                payload = jwt.decode(
                    token,
                    self.secret_key,
                    algorithms=[self.algorithm],
                    options={"require": ["sub", "exp"]},
                )
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token expired")
        except jwt.PyJWTError as e:
            logger.warning(f"[Identity] Token rejected: {e}")
            raise Unauthorized("Invalid token")

        uid = payload.get("sub") or payload.get("user_id")
        if not uid:
            raise Unauthorized("Invalid token")
        return Identity(uid=uid, email=payload.get("email"))

    def _verify_firebase(self, token: str) -> dict:
        signing_key = self._jwks_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=self.firebase_project_id,
            issuer=FIREBASE_ISSUER + self.firebase_project_id,
            options={"require": ["sub", "exp", "iat"]},
        )

    def issue(self, uid: str, email: Optional[str] = None, expires_delta: timedelta = timedelta(days=7)) -> str:
        """Mint a development token. Not available when verifying Firebase tokens."""
        if self._jwks_client is not None:
            raise RuntimeError("Firebase tokens are issued by Firebase Auth")
        if not self.secret_key:
            raise RuntimeError("JWT_SECRET_KEY is not set")
        payload = {
            "sub": uid,
            "exp": datetime.now(timezone.utc) + expires_delta,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

"""
verify.py
---------
Purpose:
    JWT verification using Supabase JWKS (ES256).

Notes:
    - SupabaseTokenVerifier is constructed once in the application lifespan
      and stored on app.state; there is no module-level client.
    - PyJWKClient caches signing keys between requests.
    - `auth_dependency` returns the verified claims; `current_user_id`
      narrows them to the Supabase user id.
"""

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from machi.infrastructure.observability.logging import get_logger

SUPABASE_AUDIENCE = "authenticated"

logger = get_logger(__name__)
_security = HTTPBearer()


class SupabaseTokenVerifier:
    """Verifies Supabase access tokens against the project's JWKS."""

    def __init__(self, jwks_url: str, audience: str = SUPABASE_AUDIENCE):
        self.audience = audience
        self._jwk_client = PyJWKClient(jwks_url)

    def verify(self, token: str) -> dict:
        signing_key = self._jwk_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            audience=self.audience,
            options={"verify_exp": True},
        )


def auth_dependency(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(_security),
) -> dict:
    verifier: SupabaseTokenVerifier = request.app.state.token_verifier
    try:
        return verifier.verify(credentials.credentials)
    except Exception as e:
        logger.warning("Token verification failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def current_user_id(claims: dict = Depends(auth_dependency)) -> str:
    user_id = claims.get("sub")
    if not user_id:
        logger.error("No user ID in JWT claims")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token: missing user ID"
        )
    return user_id

"""
Authentication Service for Petube

Verifies bearer tokens issued by the external identity provider against its
configured public key and yields the subject claims. Token minting and the
OAuth login flow live with the identity provider, not here.
"""
import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from loguru import logger

from services.errors import AuthError
from utils.config import settings

# Bearer scheme for the device registry API.
# auto_error is off so failures go through AuthError and the {"error": ...} body.
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthClaims:
    """Verified subject claims of a bearer token"""
    id: str
    email: str | None = None
    name: str | None = None


# =============================================================================
# Key Handling
# =============================================================================

@lru_cache(maxsize=8)
def load_public_key(raw_key: str) -> dict | str:
    """
    Parse the configured public key.

    Accepts a JWK JSON document (as produced by pem-to-jwk) or a PEM string.
    """
    raw_key = raw_key.strip()
    if raw_key.startswith("{"):
        try:
            return json.loads(raw_key)
        except json.JSONDecodeError as e:
            raise AuthError(f"JWT public key is not valid JSON: {e}") from e
    return raw_key


# =============================================================================
# Token Utilities
# =============================================================================

def extract_bearer_token(
    headers: Mapping[str, str],
    query_params: Mapping[str, str] | None = None
) -> str | None:
    """
    Extract a bearer token from the Authorization header.

    Falls back to the ``token`` query parameter when query_params are given
    (browsers cannot set headers on a WebSocket upgrade).
    """
    auth_header = headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None

    if query_params is not None:
        return query_params.get("token") or None

    return None


def verify_token(token: str | None, public_key: str | None = None) -> AuthClaims:
    """
    Verify a token's signature and expiry and return its subject claims.

    Raises:
        AuthError: token missing, key not configured, bad signature,
            expired, or no subject id in the payload
    """
    if not token:
        raise AuthError("Missing or invalid token")

    public_key = settings.jwt_public_key if public_key is None else public_key
    if not public_key:
        raise AuthError("JWT public key is not configured")

    key = load_public_key(public_key)

    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            key,
            algorithms=settings.jwt_algorithms_list,
            audience=settings.jwt_audience,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except JWTError as e:
        logger.debug(f"JWT verification failed: {e}")
        raise AuthError(f"Invalid token: {e}") from e

    subject_id = payload.get("id") or payload.get("sub")
    if not subject_id:
        raise AuthError("Invalid token payload")

    return AuthClaims(
        id=str(subject_id),
        email=payload.get("email"),
        name=payload.get("name"),
    )


# =============================================================================
# FastAPI Dependencies
# =============================================================================

async def require_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)
) -> AuthClaims:
    """
    FastAPI dependency that requires a verified bearer token.

    Raises AuthError (401) when the header is missing or the token is invalid.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Missing or invalid authorization header")

    return verify_token(credentials.credentials)

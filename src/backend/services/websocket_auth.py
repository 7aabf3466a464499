"""
WebSocket Authentication for stream rooms

Authenticates the upgrade request before the socket is accepted. Supports
the Authorization header and the ``token`` query parameter.
"""

from fastapi import WebSocket
from fastapi.responses import PlainTextResponse
from loguru import logger

from services.auth_service import AuthClaims, extract_bearer_token, verify_token
from services.errors import AuthError


def authenticate_websocket(websocket: WebSocket) -> AuthClaims:
    """
    Authenticate a WebSocket upgrade request.

    Returns:
        Verified claims

    Raises:
        AuthError: if no valid token was presented
    """
    token = extract_bearer_token(websocket.headers, websocket.query_params)
    claims = verify_token(token)
    logger.debug(f"WebSocket authenticated: subject={claims.id}")
    return claims


async def reject_unauthorized(websocket: WebSocket, error: AuthError):
    """Refuse the upgrade with a plain HTTP 401 response."""
    await websocket.send_denial_response(
        PlainTextResponse(f"Unauthorized: {error.message}", status_code=401)
    )

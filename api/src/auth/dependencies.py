"""FastAPI dependencies for authentication.

Learners and mentors sign in on the client with Firebase Authentication and
send their ID token as a Bearer token; the token is verified here with the
Firebase Admin SDK.
"""

import asyncio
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, status
from firebase_admin import auth

from src.auth.schemas import AuthenticatedUser
from src.core.context import set_user_id
from src.core.database import FirestoreConnection


logger = structlog.get_logger(__name__)

_BEARER_PARTS = 2


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != _BEARER_PARTS or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser:
    """Verify the Firebase ID token and return the caller's identity.

    Raises:
        HTTPException(401): If token is missing, invalid, expired or revoked
        HTTPException(503): If Google's signing certificates cannot be fetched
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing access token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        # verify_id_token may fetch Google's public certificates
        claims = await asyncio.to_thread(
            auth.verify_id_token, token, FirestoreConnection.get_app()
        )
    except auth.CertificateFetchError as e:
        # Google's key endpoint is down; the token itself may be fine
        logger.warning("id_token_certificates_unavailable", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication temporarily unavailable",
        ) from e
    except (
        auth.InvalidIdTokenError,
        auth.RevokedIdTokenError,
        ValueError,
    ) as e:
        logger.info("id_token_rejected", error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user = AuthenticatedUser.from_claims(claims)
    set_user_id(user.uid)
    return user


async def require_mentor(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> AuthenticatedUser:
    """Require the ``mentor`` custom claim."""
    if not user.is_mentor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Mentor access required",
        )
    return user


# Type aliases for dependency injection
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
CurrentMentor = Annotated[AuthenticatedUser, Depends(require_mentor)]

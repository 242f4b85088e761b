"""Bearer token identity for the HTTP API.

Tokens are itsdangerous timed signatures over {"id", "tv", "nbf"}: the user ID,
the user's token version at issue time, and an optional not-before epoch.
Verification returns a tagged AuthResult; the router dependency maps every
outcome to a response.
"""

import logging
import time
from enum import StrEnum

from fastapi import HTTPException, Request, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import BaseModel

from taskpulse.core import db_client
from taskpulse.core.config import settings
from taskpulse.domain.user import User


logger = logging.getLogger(__name__)

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="taskpulse-auth")


class AuthOutcome(StrEnum):
    """Result of verifying a bearer token."""

    OK = "ok"
    MISSING = "missing"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    NOT_YET_VALID = "not_yet_valid"
    PRINCIPAL_MISSING = "principal_missing"
    SESSION_INVALIDATED = "session_invalidated"
    INTERNAL = "internal"


class AuthResult(BaseModel):
    """Tagged verification result; `principal` is set only for OK."""

    outcome: AuthOutcome
    principal: User | None = None


def issue_token(user: User, *, not_before: float | None = None) -> str:
    """Sign a bearer token for `user`, optionally not valid before an epoch timestamp."""
    payload: dict[str, object] = {"id": user.id, "tv": user.token_version}
    if not_before is not None:
        payload["nbf"] = not_before
    return serializer.dumps(payload)


def _extract_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def authenticate(authorization: str | None) -> AuthResult:  # noqa: PLR0911
    """Verify an Authorization header value and resolve the principal."""
    token = _extract_token(authorization)
    if token is None:
        return AuthResult(outcome=AuthOutcome.MISSING)

    try:
        payload = serializer.loads(token, max_age=settings.token_max_age_seconds)
    except SignatureExpired:
        return AuthResult(outcome=AuthOutcome.EXPIRED)
    except BadSignature:
        return AuthResult(outcome=AuthOutcome.MALFORMED)

    if not isinstance(payload, dict) or not payload.get("id"):
        return AuthResult(outcome=AuthOutcome.MALFORMED)

    not_before = payload.get("nbf")
    if isinstance(not_before, int | float) and not_before > time.time():
        return AuthResult(outcome=AuthOutcome.NOT_YET_VALID)

    try:
        user = await db_client.get_user(user_id=str(payload["id"]))
    except db_client.RecordNotFoundError:
        return AuthResult(outcome=AuthOutcome.PRINCIPAL_MISSING)
    except db_client.DatabaseError as e:
        logger.error("Database error during authentication: %s", e)
        return AuthResult(outcome=AuthOutcome.INTERNAL)

    if payload.get("tv") != user.token_version:
        return AuthResult(outcome=AuthOutcome.SESSION_INVALIDATED)

    return AuthResult(outcome=AuthOutcome.OK, principal=user)


_REJECTION_MESSAGES = {
    AuthOutcome.MISSING: "Authorization header missing",
    AuthOutcome.EXPIRED: "Your session has expired. Please log in again.",
    AuthOutcome.MALFORMED: "Invalid authentication token",
    AuthOutcome.NOT_YET_VALID: "Token not yet valid",
    AuthOutcome.PRINCIPAL_MISSING: "User account not found or has been deleted",
    AuthOutcome.SESSION_INVALIDATED: "Your session was invalidated due to security changes. Please log in again.",
}


async def require_principal(request: Request) -> User:
    """FastAPI dependency resolving the authenticated user or rejecting the request."""
    result = await authenticate(request.headers.get("Authorization"))

    match result.outcome:
        case AuthOutcome.OK if result.principal is not None:
            return result.principal
        case AuthOutcome.INTERNAL | AuthOutcome.OK:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error during authentication",
            )
        case (
            AuthOutcome.MISSING
            | AuthOutcome.EXPIRED
            | AuthOutcome.MALFORMED
            | AuthOutcome.NOT_YET_VALID
            | AuthOutcome.PRINCIPAL_MISSING
            | AuthOutcome.SESSION_INVALIDATED
        ):
            logger.warning("auth_rejected", extra={"outcome": str(result.outcome), "path": request.url.path})
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=_REJECTION_MESSAGES[result.outcome],
                headers={"WWW-Authenticate": "Bearer"},
            )

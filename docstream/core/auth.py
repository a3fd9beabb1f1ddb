"""Per-request session extraction from bearer tokens."""

from dataclasses import dataclass, field

import jwt as pyjwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from docstream.core.config import get_settings

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Session:
    """Identity attached to a single request.

    ``user_id`` is None for anonymous callers; whether that is acceptable is
    decided by whoever consumes the session, not here.
    """

    user_id: str | None = None
    claims: dict = field(default_factory=dict)


def decode_session_token(token: str) -> Session:
    """Verify and decode an HS256 session JWT.

    Raises ``HTTPException(401)`` on any validation failure.
    """
    settings = get_settings()
    if not settings.auth_secret:
        raise HTTPException(status_code=500, detail="Authentication is misconfigured")

    try:
        payload = pyjwt.decode(
            token,
            settings.auth_secret,
            algorithms=["HS256"],
            options={"require": ["sub", "exp"]},
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except pyjwt.MissingRequiredClaimError as exc:
        raise HTTPException(status_code=401, detail=f"Missing required claim: {exc}")
    except pyjwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail=f"Invalid token: {exc}")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token missing sub claim")

    return Session(user_id=sub, claims=payload)


async def get_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> Session:
    """FastAPI dependency returning the caller's session.

    A missing Authorization header yields an anonymous session instead of a
    401 so that model resolution can report ``unauthorized:chat`` itself.
    """
    if credentials is None:
        return Session()

    session = decode_session_token(credentials.credentials)

    # Set user_id on request state for downstream use (error handlers, audit logging)
    request.state.user_id = session.user_id

    return session

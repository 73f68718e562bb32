"""Session handling on top of an external OAuth provider.

The provider owns sign-in. After the user approves, it redirects back with
``?code=...``; the code is exchanged at the provider's token endpoint for
the user's identity, and a local session token is issued as a cookie.
"""

import secrets
from typing import Optional

import requests
from fastapi import Request
from sqlalchemy.orm import Session

from . import models
from .config import settings
from .exceptions import Unauthorized
from .logging_utils import get_logger, log_operation

logger = get_logger(__name__)


def exchange_code_for_session(db: Session, code: str) -> str:
    """Trade an OAuth code for a new session token."""
    if not settings.oauth_token_url:
        raise Unauthorized("OAuth is not configured.")
    try:
        resp = requests.post(
            settings.oauth_token_url,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": settings.oauth_client_id,
                "client_secret": settings.oauth_client_secret,
            },
            timeout=30,
        )
    except requests.RequestException as exc:
        raise Unauthorized(f"OAuth exchange failed: {exc}") from exc
    if not resp.ok:
        log_operation(logger, operation="exchange_code", outcome="rejected", status=resp.status_code)
        raise Unauthorized(f"OAuth exchange failed ({resp.status_code}).")

    user_info = resp.json().get("user") or {}
    user_id = str(user_info.get("id") or "")
    if not user_id:
        raise Unauthorized("OAuth response did not identify a user.")

    user = db.get(models.User, user_id)
    if user is None:
        user = models.User(id=user_id, email=user_info.get("email"))
        db.add(user)
    elif user_info.get("email"):
        user.email = user_info["email"]

    token = secrets.token_hex(24)
    db.add(models.AuthSession(token=token, user_id=user_id))
    db.commit()
    log_operation(logger, operation="exchange_code", outcome="success", user_id=user_id)
    return token


def session_token(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.session_cookie)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def get_session_user_id(db: Session, token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    row = db.get(models.AuthSession, token)
    return row.user_id if row else None


def sign_out(db: Session, token: Optional[str]) -> None:
    if not token:
        return
    row = db.get(models.AuthSession, token)
    if row is not None:
        db.delete(row)
        db.commit()

# satfusion/auth.py
"""
Caller identity.

Tokens are issued by the external identity provider (HS256, shared secret);
this service only verifies them and reads the user id from `sub` (or `id`).
"""
import logging
from functools import wraps
from typing import Optional

import jwt
from flask import current_app, g, request

from satfusion.errors import Unauthenticated

logger = logging.getLogger(__name__)


def decode_token(token: str, config=None) -> dict:
    config = config or current_app.config
    options = {}
    kwargs = {}
    if config.get("JWT_AUDIENCE"):
        kwargs["audience"] = config["JWT_AUDIENCE"]
    else:
        options["verify_aud"] = False
    try:
        return jwt.decode(
            token,
            config["JWT_SECRET"],
            algorithms=[config.get("JWT_ALGORITHM", "HS256")],
            options=options,
            **kwargs,
        )
    except jwt.ExpiredSignatureError as e:
        raise Unauthenticated("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise Unauthenticated("Invalid token") from e


def user_id_from_token(token: Optional[str], config=None) -> str:
    if not token:
        raise Unauthenticated("Missing bearer token")
    payload = decode_token(token, config)
    user_id = payload.get("sub") or payload.get("id")
    if not user_id:
        raise Unauthenticated("Token has no subject")
    return str(user_id)


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_user(fn):
    """Route decorator: resolve the caller into `g.user_id` or answer 401."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        g.user_id = user_id_from_token(_bearer_token())
        return fn(*args, **kwargs)

    return wrapper


def issue_token(user_id: str, secret: str, algorithm: str = "HS256", **claims) -> str:
    """Sign a token the way the identity provider does (dev tooling and tests)."""
    payload = {"sub": str(user_id), **claims}
    return jwt.encode(payload, secret, algorithm=algorithm)

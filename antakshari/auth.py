"""
Antakshari Round Shuffler - Authentication

Registered users log in with email + password and receive a signed token.
The token is accepted either as ``Authorization: Bearer <token>`` or from
the session cookie.

Roles are deliberately binary: the single account whose email matches
``ADMIN_EMAIL`` is the host (``Role.PRIVILEGED``); everybody else is a
player (``Role.ORDINARY``).  The round and lock services only ever see the
resulting :class:`Requester`, never the email comparison.

Usage:
    - Add ``Depends(require_requester)`` on routes that need a logged-in user.
    - Add ``Depends(optional_requester)`` where anonymous access is allowed.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import HTTPException, Request, Response

from antakshari.config import (
    ADMIN_EMAIL,
    PASSWORD_HASH_ITERATIONS,
    SECRET_KEY,
    SESSION_COOKIE_NAME,
    TOKEN_MAX_AGE,
)
from antakshari.database import get_user_by_id


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------
class Role(str, Enum):
    ORDINARY = "ordinary"
    PRIVILEGED = "privileged"


@dataclass(frozen=True)
class Requester:
    """An authenticated caller as seen by the round services."""

    user_id: int
    username: str
    role: Role = Role.ORDINARY

    @property
    def is_privileged(self) -> bool:
        return self.role is Role.PRIVILEGED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.user_id,
            "username": self.username,
            "role": self.role.value,
            "isAdmin": self.is_privileged,
        }


def role_for_email(email: str) -> Role:
    """The host account is recognised by its email, nothing else."""
    if email and hmac.compare_digest(
        email.strip().lower().encode("utf-8"), ADMIN_EMAIL.encode("utf-8")
    ):
        return Role.PRIVILEGED
    return Role.ORDINARY


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------
def hash_password(password: str, *, salt: bytes | None = None) -> str:
    """Return ``pbkdf2_sha256$<iterations>$<salt>$<hash>``."""
    salt = salt or os.urandom(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, PASSWORD_HASH_ITERATIONS
    )
    return "pbkdf2_sha256${}${}${}".format(
        PASSWORD_HASH_ITERATIONS,
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    )


def verify_password(password: str, stored: str) -> bool:
    """Check *password* against a value produced by :func:`hash_password`."""
    try:
        scheme, iterations, salt_b64, hash_b64 = stored.split("$")
        if scheme != "pbkdf2_sha256":
            return False
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), salt, int(iterations)
        )
    except (ValueError, TypeError):
        return False
    return hmac.compare_digest(digest, expected)


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------
def _sign(payload: str) -> str:
    """Create an HMAC-SHA256 signature for a payload string."""
    return hmac.new(
        SECRET_KEY.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def create_token(user_id: int, email: str) -> str:
    """Create a signed token for a user."""
    data = json.dumps(
        {
            "uid": user_id,
            "email": email.strip().lower(),
            "ts": int(time.time()),
        }
    )
    sig = _sign(data)
    return f"{data}|{sig}"


def parse_token(token: str) -> dict[str, Any] | None:
    """Parse and verify a token.  Returns the payload dict or None."""
    if not token or "|" not in token:
        return None

    try:
        data_part, sig_part = token.rsplit("|", 1)
        expected_sig = _sign(data_part)

        if not hmac.compare_digest(sig_part, expected_sig):
            return None

        payload = json.loads(data_part)

        # Check expiry
        created = payload.get("ts", 0)
        if time.time() - created > TOKEN_MAX_AGE:
            return None

        if not isinstance(payload.get("uid"), int):
            return None

        return payload
    except (ValueError, TypeError, AttributeError):
        return None


def _token_from_request(request: Request) -> str:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.cookies.get(SESSION_COOKIE_NAME, "")


def set_session_cookie(response: Response, token: str) -> None:
    """Set the signed session cookie on a response."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=TOKEN_MAX_AGE,
        httponly=True,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    """Remove the session cookie."""
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
    )


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------
async def optional_requester(request: Request) -> Requester | None:
    """Resolve the caller from the request, or None when not logged in."""
    payload = parse_token(_token_from_request(request))
    if not payload:
        return None

    user = await get_user_by_id(payload["uid"])
    if not user:
        return None

    return Requester(
        user_id=user["id"],
        username=user["username"],
        role=role_for_email(user["email"]),
    )


async def require_requester(request: Request) -> Requester:
    """Like :func:`optional_requester` but rejects anonymous calls with 401."""
    requester = await optional_requester(request)
    if requester is None:
        raise HTTPException(status_code=401, detail="Not authorized, no valid token")
    return requester

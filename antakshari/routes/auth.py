"""
Antakshari Round Shuffler - Auth Routes

Register, log in, log out, and "who am I".  Login returns the signed token
in the body (for ``Authorization: Bearer``) and also sets it as a cookie.
"""

import sqlite3

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel

from antakshari.auth import (
    Requester,
    Role,
    clear_session_cookie,
    create_token,
    hash_password,
    require_requester,
    role_for_email,
    set_session_cookie,
    verify_password,
)
from antakshari.database import get_user_by_email, insert_user
from antakshari.utils import api_response

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------
class RegisterRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


def _user_payload(user_id: int, username: str, email: str, token: str) -> dict:
    role = role_for_email(email)
    return {
        "_id": user_id,
        "username": username,
        "email": email,
        "role": role.value,
        "isAdmin": role is Role.PRIVILEGED,
        "token": token,
    }


@router.post("/register", status_code=201)
async def register(body: RegisterRequest):
    """Create an account and log it in."""
    username = body.username.strip()
    email = body.email.strip().lower()
    if not username or not email or not body.password:
        raise HTTPException(status_code=400, detail="Please add all fields")
    if "@" not in email:
        raise HTTPException(status_code=400, detail="Invalid email address")

    # The host account is provisioned by the operator (scripts/seed_library.py)
    if role_for_email(email) is Role.PRIVILEGED:
        logger.warning("🚫 Registration with the host email refused")
        raise HTTPException(
            status_code=403, detail="This email is reserved for the host account"
        )

    if await get_user_by_email(email):
        raise HTTPException(status_code=409, detail="User already exists")

    try:
        user_id = await insert_user(username, email, hash_password(body.password))
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=409, detail="User already exists")

    token = create_token(user_id, email)
    response = api_response(
        _user_payload(user_id, username, email, token),
        "User registered successfully",
        status_code=201,
    )
    set_session_cookie(response, token)
    return response


@router.post("/login")
async def login(body: LoginRequest):
    """Verify credentials and hand out a token."""
    user = await get_user_by_email(body.email)
    if not user or not verify_password(body.password, user["password_hash"]):
        logger.warning("🔒 Failed login attempt for '{}'", body.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info("🔓 User '{}' logged in", user["username"])
    token = create_token(user["id"], user["email"])
    response = api_response(
        _user_payload(user["id"], user["username"], user["email"], token),
        "Login successful",
    )
    set_session_cookie(response, token)
    return response


@router.post("/logout")
async def logout():
    """Drop the session cookie.  Bearer tokens simply expire."""
    response = api_response(None, "Logged out")
    clear_session_cookie(response)
    return response


@router.get("/me")
async def me(requester: Requester = Depends(require_requester)):
    """The caller as the round services see it."""
    return api_response(requester.to_dict(), "Current user")

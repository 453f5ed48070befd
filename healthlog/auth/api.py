# -*- coding: utf-8 -*-
"""Auth: account endpoints and the user's health profile."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from ..config import settings
from .models import (
    AuthResponse,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserPublic,
    compute_bmi,
)
from .security import TOKEN_COOKIE_NAME, create_access_token, get_current_user, hash_password, verify_password
from .storage import create_user, get_user_by_email, update_profile

router = APIRouter(prefix="/api/auth", tags=["Auth"])
logger = logging.getLogger(__name__)


def _user_public(row: dict) -> UserPublic:
    return UserPublic(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        height_cm=row.get("height_cm"),
        weight_goal_kg=row.get("weight_goal_kg"),
        current_weight_kg=row.get("current_weight_kg"),
        medical_conditions=row.get("medical_conditions") or [],
        bmi=compute_bmi(row.get("height_cm"), row.get("current_weight_kg")),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _issue_session(resp: Response, user: dict) -> AuthResponse:
    token = create_access_token(user_id=user["id"], email=user["email"])
    resp.set_cookie(
        TOKEN_COOKIE_NAME,
        token,
        httponly=True,
        secure=bool(settings.cookie_secure),
        samesite="lax",
        max_age=int(settings.token_ttl_days) * 24 * 60 * 60,
        path="/",
    )
    return AuthResponse(user=_user_public(user), token=token)


@router.post("/register", response_model=AuthResponse, summary="Register a new user")
def register(request: RegisterRequest, response: Response):
    if get_user_by_email(request.email):
        raise HTTPException(status_code=400, detail="User already exists with this email")

    user = create_user(
        name=request.name,
        email=request.email,
        password_hash=hash_password(request.password),
        height_cm=request.height_cm,
        weight_goal_kg=request.weight_goal_kg,
        current_weight_kg=request.current_weight_kg,
        medical_conditions=request.medical_conditions,
    )
    logger.info("registered user %s", user["id"])
    return _issue_session(response, user)


@router.post("/login", response_model=AuthResponse, summary="Login")
def login(request: LoginRequest, response: Response):
    user = get_user_by_email(request.email)
    if not user or not verify_password(request.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    return _issue_session(response, user)


@router.post("/logout", summary="Logout")
def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE_NAME, path="/")
    return {"status": "ok"}


@router.get("/me", response_model=UserPublic, summary="Current user and health profile")
def me(user: dict = Depends(get_current_user)):
    return _user_public(user)


@router.patch("/me", response_model=UserPublic, summary="Update health profile")
def update_me(request: ProfileUpdateRequest, user: dict = Depends(get_current_user)):
    changes = request.model_dump(exclude_unset=True)
    if changes.get("name") is None:
        # name is required on the account; null means "leave as is".
        changes.pop("name", None)
    updated = update_profile(user["id"], changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _user_public(updated)

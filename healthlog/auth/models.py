# -*- coding: utf-8 -*-
"""Auth: account and health profile models."""

from __future__ import annotations

import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")


def _clean_conditions(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return None
    out: List[str] = []
    for item in value:
        s = str(item).strip()
        if s and s not in out:
            out.append(s)
    return out


class HealthProfile(BaseModel):
    """Optional body measurements and conditions kept on the account."""

    height_cm: Optional[float] = Field(None, ge=50, le=300)
    weight_goal_kg: Optional[float] = Field(None, ge=20, le=500)
    current_weight_kg: Optional[float] = Field(None, ge=20, le=500)
    medical_conditions: Optional[List[str]] = None

    @field_validator("medical_conditions")
    @classmethod
    def _conditions(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_conditions(value)


class RegisterRequest(HealthProfile):
    name: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., max_length=254)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        email = value.strip().lower()
        if not _EMAIL_RE.match(email):
            raise ValueError("Please enter a valid email")
        return email


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class ProfileUpdateRequest(HealthProfile):
    name: Optional[str] = Field(None, min_length=1, max_length=50)


class UserPublic(BaseModel):
    id: str
    name: str
    email: str
    height_cm: Optional[float] = None
    weight_goal_kg: Optional[float] = None
    current_weight_kg: Optional[float] = None
    medical_conditions: List[str] = Field(default_factory=list)
    bmi: Optional[float] = None
    created_at: str
    updated_at: str


class AuthResponse(BaseModel):
    user: UserPublic
    token: str


def compute_bmi(height_cm: Optional[float], weight_kg: Optional[float]) -> Optional[float]:
    if not height_cm or not weight_kg:
        return None
    meters = height_cm / 100.0
    return round(weight_kg / (meters * meters), 1)

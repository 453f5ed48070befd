# -*- coding: utf-8 -*-
"""Derived health records: read-only API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user
from .models import BodyStatListResponse, LabTestListResponse, MealListResponse, MedicineListResponse
from .storage import list_body_stats, list_lab_tests, list_meals, list_medicines

router = APIRouter(prefix="/api/records", tags=["Records"])


@router.get("/meals", response_model=MealListResponse, summary="List meals")
def get_meals(
    journal_entry_id: str | None = Query(default=None, description="Only records derived from this journal entry"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    items = list_meals(user["id"], journal_entry_id=journal_entry_id)
    return MealListResponse(count=len(items), items=items[offset : offset + limit])


@router.get("/medicines", response_model=MedicineListResponse, summary="List medicines")
def get_medicines(
    journal_entry_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    items = list_medicines(user["id"], journal_entry_id=journal_entry_id)
    return MedicineListResponse(count=len(items), items=items[offset : offset + limit])


@router.get("/body-stats", response_model=BodyStatListResponse, summary="List body stats")
def get_body_stats(
    journal_entry_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    items = list_body_stats(user["id"], journal_entry_id=journal_entry_id)
    return BodyStatListResponse(count=len(items), items=items[offset : offset + limit])


@router.get("/tests", response_model=LabTestListResponse, summary="List lab tests")
def get_lab_tests(
    journal_entry_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    items = list_lab_tests(user["id"], journal_entry_id=journal_entry_id)
    return LabTestListResponse(count=len(items), items=items[offset : offset + limit])

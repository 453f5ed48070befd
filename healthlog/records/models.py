# -*- coding: utf-8 -*-
"""Derived health records: Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class TimeOfDay(str, Enum):
    morning = "morning"
    noon = "noon"
    evening = "evening"
    night = "night"


class FoodCategory(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snack = "snack"
    beverage = "beverage"


class MedicineFrequency(str, Enum):
    daily = "daily"
    twice_daily = "twice-daily"
    thrice_daily = "thrice-daily"
    weekly = "weekly"
    as_needed = "as-needed"


class MedicineCategory(str, Enum):
    antibiotic = "antibiotic"
    painkiller = "painkiller"
    multivitamin = "multivitamin"
    supplement = "supplement"
    prescription = "prescription"
    other = "other"


class Mood(str, Enum):
    excellent = "excellent"
    good = "good"
    okay = "okay"
    poor = "poor"
    terrible = "terrible"


class Energy(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class LabTestStatus(str, Enum):
    normal = "normal"
    high = "high"
    low = "low"
    critical = "critical"
    pending = "pending"


class LabTestCategory(str, Enum):
    blood = "blood"
    urine = "urine"
    imaging = "imaging"
    cardiac = "cardiac"
    other = "other"


class FoodItem(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: str = Field("1 serving", min_length=1)
    calories: float = Field(0.0, ge=0)
    category: FoodCategory = FoodCategory.snack


class Meal(BaseModel):
    id: str
    user_id: str
    date: str
    time: TimeOfDay = TimeOfDay.morning
    food_items: List[FoodItem] = Field(default_factory=list)
    total_calories: float = Field(0.0, ge=0)
    notes: Optional[str] = Field(None, max_length=500)
    is_from_journal: bool = False
    journal_entry_id: Optional[str] = None
    created_at: str


class Medicine(BaseModel):
    id: str
    user_id: str
    name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    time: TimeOfDay
    frequency: MedicineFrequency = MedicineFrequency.daily
    start_date: str
    end_date: Optional[str] = None
    duration_days: Optional[int] = Field(None, ge=1)
    category: MedicineCategory = MedicineCategory.other
    is_active: bool = True
    notes: Optional[str] = Field(None, max_length=500)
    is_from_journal: bool = False
    journal_entry_id: Optional[str] = None
    created_at: str


class BodyStat(BaseModel):
    id: str
    user_id: str
    date: str
    weight: Optional[float] = Field(None, ge=20, le=500, description="kg")
    water_intake: Optional[float] = Field(None, ge=0, le=50, description="liters")
    sleep_hours: Optional[float] = Field(None, ge=0, le=24)
    steps: Optional[int] = Field(None, ge=0)
    systolic: Optional[float] = Field(None, ge=50, le=300)
    diastolic: Optional[float] = Field(None, ge=30, le=200)
    heart_rate: Optional[float] = Field(None, ge=30, le=300)
    temperature: Optional[float] = Field(None, ge=30, le=50, description="Celsius")
    mood: Optional[Mood] = None
    energy: Optional[Energy] = None
    notes: Optional[str] = Field(None, max_length=500)
    is_from_journal: bool = False
    journal_entry_id: Optional[str] = None
    created_at: str


class ReferenceRange(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    unit: Optional[str] = None


class LabTest(BaseModel):
    id: str
    user_id: str
    test_name: str = Field(..., min_length=1)
    date: str
    result: str = Field(..., min_length=1)
    result_value: Optional[float] = None
    unit: Optional[str] = None
    reference_range: Optional[ReferenceRange] = None
    status: LabTestStatus = LabTestStatus.normal
    category: LabTestCategory = LabTestCategory.blood
    lab_name: Optional[str] = None
    doctor_name: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)
    is_from_journal: bool = False
    journal_entry_id: Optional[str] = None
    created_at: str

    @model_validator(mode="after")
    def _classify(self) -> "LabTest":
        status = classify_result(self.result_value, self.reference_range)
        if status is not None:
            self.status = status
        return self


def classify_result(value: Optional[float], ref: Optional[ReferenceRange]) -> Optional[LabTestStatus]:
    """Compare a numeric result against its reference range (None when either is missing)."""
    if value is None or ref is None:
        return None
    if ref.min is not None and value < ref.min:
        return LabTestStatus.low
    if ref.max is not None and value > ref.max:
        return LabTestStatus.high
    if ref.min is None and ref.max is None:
        return None
    return LabTestStatus.normal


class MealListResponse(BaseModel):
    count: int
    items: List[Meal]


class MedicineListResponse(BaseModel):
    count: int
    items: List[Medicine]


class BodyStatListResponse(BaseModel):
    count: int
    items: List[BodyStat]


class LabTestListResponse(BaseModel):
    count: int
    items: List[LabTest]

# -*- coding: utf-8 -*-
"""Journal: Pydantic models.

``Parsed*`` models describe the structure the extraction model is asked to return.
They only normalize shapes (null lists, numbers given as strings, a single value
where a list is expected); range checks belong to the derived record models.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

RAW_TEXT_MAX_LENGTH = 5000

_NUM_RE = re.compile(r"-?\d+(?:\.\d+)?")
_RANGE_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(?:-|\u2013|to)\s*(-?\d+(?:\.\d+)?)\s*(.*)$", re.IGNORECASE)
_BOUND_RE = re.compile(r"^\s*([<>])=?\s*(-?\d+(?:\.\d+)?)\s*(.*)$")


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        m = _NUM_RE.search(value.replace(",", ""))
        return float(m.group(0)) if m else None
    return None


def _as_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (str, dict)):
        return [value]
    return value


def _as_object(value: Any) -> Any:
    """A section meant to be an object: keep dicts, take the first dict of a list, drop anything else."""
    if isinstance(value, (dict, BaseModel)):
        return value
    if isinstance(value, list):
        return next((v for v in value if isinstance(v, dict)), None)
    return None


def _as_range(value: Any) -> Any:
    """Reference range as an object; text such as "4-5.6 %" or "<100 mg/dL" is split into bounds."""
    if not isinstance(value, str):
        return _as_object(value)
    m = _RANGE_RE.match(value)
    if m:
        return {"min": m.group(1), "max": m.group(2), "unit": m.group(3).strip() or None}
    m = _BOUND_RE.match(value)
    if m:
        bound = "max" if m.group(1) == "<" else "min"
        return {bound: m.group(2), "unit": m.group(3).strip() or None}
    return None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g}"
    if isinstance(value, str):
        s = value.strip()
        return s or None
    return value


class ProcessingStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"


class ParsedMeal(BaseModel):
    time: Optional[str] = None
    items: List[str] = Field(default_factory=list)
    quantity: Optional[str] = None
    calories: Optional[float] = None

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> Any:
        items = _as_list(value)
        if not isinstance(items, list):
            return items
        out: List[str] = []
        for item in items:
            if isinstance(item, dict):
                item = item.get("name") or item.get("item") or item.get("food")
            if item is None:
                continue
            s = str(item).strip()
            if s:
                out.append(s)
        return out

    @field_validator("time", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_text(cls, value: Any) -> Any:
        return _as_text(value)

    @field_validator("calories", mode="before")
    @classmethod
    def _calories_number(cls, value: Any) -> Optional[float]:
        return _coerce_float(value)


class ParsedMedicine(BaseModel):
    name: Optional[str] = None
    time: Optional[str] = None
    dosage: Optional[str] = None

    @field_validator("name", "dosage", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return _as_text(value)

    @field_validator("time", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class ParsedBodyStats(BaseModel):
    water_intake_liters: Optional[float] = Field(
        None, validation_alias=AliasChoices("waterIntakeLiters", "water_intake_liters")
    )
    weight_kg: Optional[float] = Field(None, validation_alias=AliasChoices("weightKg", "weight_kg"))
    sleep_hours: Optional[float] = Field(None, validation_alias=AliasChoices("sleepHours", "sleep_hours"))
    steps: Optional[float] = None
    mood: Optional[str] = None
    energy: Optional[str] = None

    @field_validator("water_intake_liters", "weight_kg", "sleep_hours", "steps", mode="before")
    @classmethod
    def _number(cls, value: Any) -> Optional[float]:
        return _coerce_float(value)

    @field_validator("mood", "energy", mode="before")
    @classmethod
    def _label(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value

    def has_values(self) -> bool:
        return any(v is not None for v in self.model_dump().values())


class ParsedReferenceRange(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    unit: Optional[str] = None

    @field_validator("min", "max", mode="before")
    @classmethod
    def _number(cls, value: Any) -> Optional[float]:
        return _coerce_float(value)


class ParsedTest(BaseModel):
    test_name: Optional[str] = Field(None, validation_alias=AliasChoices("testName", "test_name"))
    result: Optional[str] = None
    result_value: Optional[float] = Field(None, validation_alias=AliasChoices("resultValue", "result_value"))
    unit: Optional[str] = None
    reference_range: Optional[ParsedReferenceRange] = Field(
        None, validation_alias=AliasChoices("referenceRange", "reference_range")
    )

    @field_validator("test_name", "result", "unit", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return _as_text(value)

    @field_validator("result_value", mode="before")
    @classmethod
    def _number(cls, value: Any) -> Optional[float]:
        return _coerce_float(value)

    @field_validator("reference_range", mode="before")
    @classmethod
    def _range(cls, value: Any) -> Any:
        return _as_range(value)


class ParsedJournal(BaseModel):
    meals: List[ParsedMeal] = Field(default_factory=list)
    medicines: List[ParsedMedicine] = Field(default_factory=list)
    body_stats: Optional[ParsedBodyStats] = Field(None, validation_alias=AliasChoices("bodyStats", "body_stats"))
    tests: List[ParsedTest] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("meals", "medicines", "tests", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("body_stats", mode="before")
    @classmethod
    def _body_stats_object(cls, value: Any) -> Any:
        return _as_object(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_text(cls, value: Any) -> Any:
        if isinstance(value, list):
            return "\n".join(str(v) for v in value if v is not None) or None
        return _as_text(value)


class ParseJournalRequest(BaseModel):
    raw_text: str = Field(..., min_length=1, max_length=RAW_TEXT_MAX_LENGTH)
    date: Optional[str] = Field(None, description="ISO8601 date or timestamp; defaults to now")

    @field_validator("raw_text", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).isoformat()
        except ValueError as exc:
            raise ValueError("date must be a valid ISO8601 date") from exc


class CreatedItems(BaseModel):
    meals: int = 0
    medicines: int = 0
    body_stats: int = Field(0, ge=0, le=1)
    tests: int = 0


class ParseJournalResponse(BaseModel):
    message: str = "Journal entry parsed successfully"
    journal_id: str
    parsed_data: ParsedJournal
    created_items: CreatedItems


class ProcessingStatusResponse(BaseModel):
    journal_id: str
    processing_status: ProcessingStatus
    is_processed: bool
    processing_error: Optional[str] = None
    parsed_data: Optional[ParsedJournal] = None


class JournalEntry(BaseModel):
    id: str
    user_id: str
    date: str
    raw_text: str
    processing_status: ProcessingStatus
    is_processed: bool = False
    parsed_data: Optional[ParsedJournal] = None
    processing_error: Optional[str] = None
    ai_response: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    word_count: int = 0
    reading_time_minutes: int = 0
    created_at: str
    updated_at: str


class JournalListResponse(BaseModel):
    count: int
    entries: List[JournalEntry]

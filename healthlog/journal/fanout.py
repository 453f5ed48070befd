# -*- coding: utf-8 -*-
"""Journal: write derived records (meals/medicines/body stats/lab tests) from a parsed entry.

Writes are best-effort and independent: one record failing its constraints or the
insert is logged and counted as a failure while the remaining records are still
attempted. There is no rollback across record types.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..records.storage import create_body_stat, create_lab_test, create_meal, create_medicine
from .models import CreatedItems, ParsedBodyStats, ParsedJournal, ParsedMeal, ParsedMedicine, ParsedTest

logger = logging.getLogger(__name__)

JOURNAL_MEAL_NOTE = "Parsed from journal entry"
DEFAULT_QUANTITY = "1 serving"


@dataclass
class FanOutReport:
    created: Dict[str, int] = field(
        default_factory=lambda: {"meals": 0, "medicines": 0, "body_stats": 0, "tests": 0}
    )
    failures: List[str] = field(default_factory=list)

    def created_items(self) -> CreatedItems:
        return CreatedItems(**self.created)


def _meal_kwargs(meal: ParsedMeal) -> Dict[str, Any]:
    # Items listed under one meal share the meal's quantity and calorie value.
    quantity = meal.quantity or DEFAULT_QUANTITY
    calories = meal.calories or 0.0
    return {
        "time": meal.time or "morning",
        "food_items": [{"name": name, "quantity": quantity, "calories": calories} for name in meal.items],
        "notes": JOURNAL_MEAL_NOTE,
    }


def _medicine_kwargs(medicine: ParsedMedicine) -> Dict[str, Any]:
    return {"name": medicine.name or "", "dosage": medicine.dosage or "", "time": medicine.time or ""}


def body_stat_values(stats: ParsedBodyStats) -> Dict[str, Any]:
    """Only the fields the model actually reported."""
    values: Dict[str, Any] = {}
    if stats.water_intake_liters is not None:
        values["water_intake"] = stats.water_intake_liters
    if stats.weight_kg is not None:
        values["weight"] = stats.weight_kg
    if stats.sleep_hours is not None:
        values["sleep_hours"] = stats.sleep_hours
    if stats.steps is not None:
        values["steps"] = int(round(stats.steps))
    if stats.mood is not None:
        values["mood"] = stats.mood
    if stats.energy is not None:
        values["energy"] = stats.energy
    return values


def _test_kwargs(test: ParsedTest) -> Dict[str, Any]:
    result = test.result
    if not result and test.result_value is not None:
        result = f"{test.result_value:g} {test.unit or ''}".strip()
    ref: Optional[Dict[str, Any]] = None
    if test.reference_range is not None:
        ref = test.reference_range.model_dump(exclude_none=True) or None
    return {
        "test_name": test.test_name or "",
        "result": result or "",
        "result_value": test.result_value,
        "unit": test.unit,
        "reference_range": ref,
    }


def _attempt(report: FanOutReport, category: str, label: str, write: Callable[[], Any]) -> None:
    try:
        write()
    except Exception as exc:
        logger.warning("fan-out %s write failed (%s): %s", category, label, exc, exc_info=True)
        report.failures.append(f"{category}[{label}]: {exc}")
        return
    report.created[category] += 1


def write_derived_records(
    *,
    user_id: str,
    journal_entry_id: str,
    entry_date: str,
    parsed: ParsedJournal,
) -> FanOutReport:
    report = FanOutReport()
    link = {"user_id": user_id, "is_from_journal": True, "journal_entry_id": journal_entry_id}

    for idx, meal in enumerate(parsed.meals):
        kwargs = _meal_kwargs(meal)
        _attempt(report, "meals", str(idx), lambda kw=kwargs: create_meal(date=entry_date, **kw, **link))

    for idx, medicine in enumerate(parsed.medicines):
        kwargs = _medicine_kwargs(medicine)
        _attempt(
            report,
            "medicines",
            medicine.name or str(idx),
            lambda kw=kwargs: create_medicine(start_date=entry_date, **kw, **link),
        )

    if parsed.body_stats is not None and parsed.body_stats.has_values():
        values = body_stat_values(parsed.body_stats)
        _attempt(report, "body_stats", "0", lambda: create_body_stat(date=entry_date, values=values, **link))

    for idx, test in enumerate(parsed.tests):
        kwargs = _test_kwargs(test)
        _attempt(
            report,
            "tests",
            test.test_name or str(idx),
            lambda kw=kwargs: create_lab_test(date=entry_date, **kw, **link),
        )

    if report.failures:
        logger.warning(
            "journal %s fan-out finished with %d failed write(s); created=%s",
            journal_entry_id,
            len(report.failures),
            report.created,
        )
    return report

# -*- coding: utf-8 -*-
"""Journal: decode the extraction model's text into ``ParsedJournal``."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from .models import ParsedJournal


@dataclass(frozen=True)
class Decoded:
    parsed: ParsedJournal


@dataclass(frozen=True)
class DecodeFailed:
    raw_text: str
    reason: str


DecodeResult = Union[Decoded, DecodeFailed]


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s*```$", "", cleaned)
    return cleaned


def _remove_trailing_commas(text: str) -> str:
    """Remove trailing commas before } or ] while preserving string literals."""
    out: list[str] = []
    in_str = False
    escaped = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_str:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "\"":
                in_str = False
            i += 1
            continue

        if ch == "\"":
            in_str = True
        elif ch == ",":
            j = i + 1
            while j < len(text) and text[j] in " \t\r\n":
                j += 1
            if j < len(text) and text[j] in "}]":
                i += 1
                continue

        out.append(ch)
        i += 1
    return "".join(out)


def _iter_json_object_candidates(text: str) -> List[str]:
    """Balanced top-level {...} spans, scanning past braces inside strings.

    Models sometimes wrap the object in prose or emit more than one object.
    """
    candidates: List[str] = []
    in_str = False
    escaped = False
    depth = 0
    start_idx: int | None = None

    for i, ch in enumerate(text):
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "\"":
                in_str = False
            continue

        if ch == "\"":
            in_str = True
        elif ch == "{":
            if depth == 0:
                start_idx = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start_idx is not None:
                candidates.append(text[start_idx : i + 1])
                start_idx = None

    return candidates


def _sanitize_json_like(text: str) -> str:
    cleaned = text.replace("“", "\"").replace("”", "\"").replace("‘", "'").replace("’", "'")
    cleaned = _remove_trailing_commas(cleaned)
    cleaned = re.sub(r"\bNaN\b", "null", cleaned)
    cleaned = re.sub(r"-?\bInfinity\b", "null", cleaned)
    return cleaned


def _load_object(text: str) -> Dict[str, Any]:
    cleaned = _strip_fences(text)
    last_error: Exception | None = None

    # Whole text first: a bare JSON document is the expected case.
    for attempt in (cleaned, _sanitize_json_like(cleaned)):
        try:
            parsed = json.loads(attempt)
        except ValueError as exc:
            last_error = exc
            continue
        if isinstance(parsed, dict):
            return parsed
        last_error = ValueError(f"expected a JSON object, got {type(parsed).__name__}")

    for candidate in _iter_json_object_candidates(cleaned):
        for attempt in (candidate, _sanitize_json_like(candidate)):
            try:
                parsed = json.loads(attempt)
            except ValueError as exc:
                last_error = exc
                continue
            if isinstance(parsed, dict):
                return parsed

    raise ValueError(str(last_error) if last_error else "no JSON object found")


def _validation_summary(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors()[:3]:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def decode_response(text: str | None) -> DecodeResult:
    """Interpret model output as ``ParsedJournal``.

    Only the structure is checked; values that are out of range for a record are
    left for the record models to reject.
    """
    raw = text or ""
    if not raw.strip():
        return DecodeFailed(raw_text=raw, reason="AI response was empty")
    try:
        obj = _load_object(raw)
    except ValueError as exc:
        return DecodeFailed(raw_text=raw, reason=f"Failed to parse AI response as JSON: {exc}")
    try:
        parsed = ParsedJournal.model_validate(obj)
    except ValidationError as exc:
        return DecodeFailed(
            raw_text=raw,
            reason=f"AI response did not match the expected structure: {_validation_summary(exc)}",
        )
    return Decoded(parsed=parsed)

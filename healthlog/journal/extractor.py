# -*- coding: utf-8 -*-
"""Journal: structured extraction via an OpenAI-compatible chat completions API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

RAW_RESPONSE_SNIPPET = 800


@dataclass(frozen=True)
class ExtractionSettings:
    url: str
    api_key: Optional[str]
    model: str
    timeout: float
    max_tokens: int
    temperature: float


@dataclass(frozen=True)
class ExtractionSucceeded:
    content: str


@dataclass(frozen=True)
class ExtractionFailed:
    message: str
    raw_response: Optional[str] = None


ExtractionResult = Union[ExtractionSucceeded, ExtractionFailed]


SYSTEM_PROMPT = (
    "You are a health data parser. Parse the user's health journal entry into structured JSON. "
    "Focus on Kashmiri and South Asian food items, medicines, and health metrics. "
    "Return STRICT JSON only: no markdown, no code fences, no commentary. "
    "Use double quotes for all keys/strings and no trailing commas. "
    "Omit anything the entry does not mention; do NOT invent values.\n"
    "\n"
    "Output format:\n"
    "{\n"
    '  "meals": [\n'
    '    {"time": "morning|noon|evening|night", "items": ["food item names"], '
    '"quantity": "amount description", "calories": number}\n'
    "  ],\n"
    '  "medicines": [\n'
    '    {"name": "medicine name", "time": "morning|noon|evening|night", "dosage": "dosage description"}\n'
    "  ],\n"
    '  "bodyStats": {\n'
    '    "waterIntakeLiters": number, "weightKg": number, "sleepHours": number, "steps": number,\n'
    '    "mood": "excellent|good|okay|poor|terrible", "energy": "high|medium|low"\n'
    "  },\n"
    '  "tests": [\n'
    '    {"testName": "test name", "result": "result description", "resultValue": number, '
    '"unit": "unit of measurement", "referenceRange": {"min": number, "max": number, "unit": "unit"}}\n'
    "  ],\n"
    '  "notes": "additional notes"\n'
    "}\n"
)


def resolve_extraction_settings() -> ExtractionSettings:
    url = settings.ai_api_url.rstrip("/")
    if not url.endswith("/chat/completions"):
        url = f"{url}/chat/completions"
    return ExtractionSettings(
        url=url,
        api_key=(settings.ai_api_key or "").strip() or None,
        model=settings.ai_model,
        timeout=float(settings.ai_timeout),
        max_tokens=int(settings.ai_max_tokens),
        temperature=float(settings.ai_temperature),
    )


def build_prompt(raw_text: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": f'Parse this journal entry: "{raw_text.strip()}"'},
    ]


def _provider_error_message(body: str) -> Optional[str]:
    """Pull a human-readable message out of a JSON error body, if there is one."""
    try:
        parsed = json.loads(body)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None
    err = parsed.get("error")
    if isinstance(err, dict) and isinstance(err.get("message"), str) and err["message"].strip():
        return err["message"].strip()
    if isinstance(err, str) and err.strip():
        return err.strip()
    for key in ("message", "detail"):
        val = parsed.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return None


def _message_content(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    if isinstance(first.get("text"), str):
        return first["text"]
    return None


def _status_failure(resp: httpx.Response) -> ExtractionFailed:
    body = resp.text or ""
    detail = _provider_error_message(body) or resp.reason_phrase or "request failed"
    if resp.status_code in (401, 403):
        message = f"AI API rejected the credential ({resp.status_code}): {detail}"
    else:
        message = f"AI API error ({resp.status_code}): {detail}"
    return ExtractionFailed(message=message, raw_response=body[:RAW_RESPONSE_SNIPPET] or None)


def request_extraction(raw_text: str, *, client: httpx.Client | None = None) -> ExtractionResult:
    """Send the journal text to the completion service and return the model's raw text.

    Every transport-level problem comes back as ``ExtractionFailed``; nothing here
    retries, a new attempt is an explicit user retry.
    """
    cfg = resolve_extraction_settings()
    if not cfg.api_key:
        return ExtractionFailed(message="AI API key not configured (set AI_API_KEY)")

    payload = {
        "model": cfg.model,
        "messages": build_prompt(raw_text),
        "max_tokens": cfg.max_tokens,
        "temperature": cfg.temperature,
    }
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {cfg.api_key}",
    }

    owns_client = client is None
    http = client or httpx.Client(timeout=cfg.timeout, follow_redirects=True)
    try:
        resp = http.post(cfg.url, headers=headers, json=payload)
    except httpx.TimeoutException as exc:
        logger.warning("extraction call timed out after %ss: %s", cfg.timeout, exc)
        return ExtractionFailed(message=f"AI API call timed out after {cfg.timeout:g}s")
    except httpx.HTTPError as exc:
        logger.warning("extraction call failed: %s", exc)
        return ExtractionFailed(message=f"AI API unreachable: {exc}")
    finally:
        if owns_client:
            http.close()

    if resp.status_code >= 400:
        failure = _status_failure(resp)
        logger.warning("extraction call returned %s", resp.status_code)
        return failure

    try:
        data = resp.json()
    except ValueError:
        snippet = (resp.text or "").replace("\n", " ").strip()[:200]
        return ExtractionFailed(
            message=f"AI API returned non-JSON response: {snippet}",
            raw_response=(resp.text or "")[:RAW_RESPONSE_SNIPPET] or None,
        )

    content = _message_content(data)
    if content is None:
        return ExtractionFailed(
            message="AI API response had no message content",
            raw_response=json.dumps(data, ensure_ascii=False)[:RAW_RESPONSE_SNIPPET],
        )
    return ExtractionSucceeded(content=content)

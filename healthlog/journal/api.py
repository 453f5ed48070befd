# -*- coding: utf-8 -*-
"""Journal: API endpoints (AI parsing + journal entries)."""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ..auth.security import get_current_user
from .errors import InvalidStateError, JournalNotFoundError, OutcomeNotRecordedError
from .models import (
    JournalEntry,
    JournalListResponse,
    ParseJournalRequest,
    ParseJournalResponse,
    ProcessingStatus,
    ProcessingStatusResponse,
)
from .pipeline import (
    FAILURE_DECODE,
    FAILURE_TRANSPORT,
    Completed,
    ProcessingOutcome,
    get_processing_status,
    retry_journal,
    submit_journal,
)
from .storage import delete_journal_entry, get_journal_entry, list_journal_entries

router = APIRouter(prefix="/api/ai", tags=["AI"])
journals_router = APIRouter(prefix="/api/journals", tags=["Journals"])

_FAILURE_MESSAGES = {
    FAILURE_TRANSPORT: "Failed to process journal entry with AI",
    FAILURE_DECODE: "Failed to parse AI response",
}

_FAILURE_RESPONSES = {
    404: {"description": "Entry not found, or deleted while it was being processed."},
    409: {"description": "Entry status changed while it was being processed; body carries journal_id."},
    500: {"description": "AI response could not be parsed, or processing crashed; body carries journal_id."},
    502: {"description": "AI service call failed; body carries journal_id."},
}


def _outcome_response(journal_id: str, outcome: ProcessingOutcome) -> Union[ParseJournalResponse, JSONResponse]:
    if isinstance(outcome, Completed):
        return ParseJournalResponse(
            journal_id=journal_id,
            parsed_data=outcome.parsed,
            created_items=outcome.created,
        )
    status_code = 502 if outcome.kind == FAILURE_TRANSPORT else 500
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": _FAILURE_MESSAGES.get(outcome.kind, "Server error during journal parsing"),
            "journal_id": journal_id,
            "error": outcome.error,
            "raw_response": outcome.ai_response,
        },
    )


def _unrecorded_response(exc: OutcomeNotRecordedError) -> JSONResponse:
    if isinstance(exc.cause, JournalNotFoundError):
        status_code, detail = 404, "Journal entry not found"
    else:
        status_code, detail = 409, "Journal entry changed during processing"
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "journal_id": exc.journal_id, "error": str(exc.cause), "raw_response": None},
    )


@router.post(
    "/parse-journal",
    response_model=ParseJournalResponse,
    summary="Parse a journal entry into health records",
    responses=_FAILURE_RESPONSES,
)
def parse_journal(request: ParseJournalRequest, user: dict = Depends(get_current_user)):
    try:
        entry, outcome = submit_journal(user_id=user["id"], raw_text=request.raw_text, date=request.date)
    except OutcomeNotRecordedError as exc:
        return _unrecorded_response(exc)
    return _outcome_response(entry.id, outcome)


@router.get("/status/{journal_id}", response_model=ProcessingStatusResponse, summary="AI processing status")
def processing_status(journal_id: str, user: dict = Depends(get_current_user)):
    try:
        return get_processing_status(user_id=user["id"], journal_id=journal_id)
    except JournalNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Journal entry not found") from exc


@router.post(
    "/retry/{journal_id}",
    response_model=ParseJournalResponse,
    summary="Retry failed journal processing",
    responses={400: {"description": "Entry is not in failed status."}, **_FAILURE_RESPONSES},
)
def retry_processing(journal_id: str, user: dict = Depends(get_current_user)):
    try:
        entry, outcome = retry_journal(user_id=user["id"], journal_id=journal_id)
    except OutcomeNotRecordedError as exc:
        return _unrecorded_response(exc)
    except JournalNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Journal entry not found") from exc
    except InvalidStateError as exc:
        raise HTTPException(status_code=400, detail="Journal entry is not in failed status") from exc
    return _outcome_response(entry.id, outcome)


@journals_router.get("", response_model=JournalListResponse, summary="List my journal entries")
def list_journals(
    status: ProcessingStatus | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    entries = list_journal_entries(user_id=user["id"], status=status.value if status else None)
    return JournalListResponse(count=len(entries), entries=entries[offset : offset + limit])


@journals_router.get("/{journal_id}", response_model=JournalEntry, summary="Get a journal entry")
def read_journal(journal_id: str, user: dict = Depends(get_current_user)):
    entry = get_journal_entry(user_id=user["id"], journal_id=journal_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return entry


@journals_router.delete("/{journal_id}", summary="Delete a journal entry (derived records are kept)")
def remove_journal(journal_id: str, user: dict = Depends(get_current_user)):
    if not delete_journal_entry(user_id=user["id"], journal_id=journal_id):
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return {"status": "ok"}

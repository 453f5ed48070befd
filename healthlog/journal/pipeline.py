# -*- coding: utf-8 -*-
"""Journal: AI parsing pipeline (extract → decode → fan-out → final status).

``process_entry`` is shared by first submission and retry. Each stage hands back
a success or failure value and the final status is decided once, at the end.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .decoder import DecodeFailed, decode_response
from .errors import InvalidStateError, JournalError, OutcomeNotRecordedError
from .extractor import ExtractionFailed, request_extraction
from .fanout import write_derived_records
from .models import CreatedItems, JournalEntry, ParsedJournal, ProcessingStatusResponse
from .state import can_retry
from .storage import (
    create_journal_entry,
    mark_completed,
    mark_failed,
    mark_retry,
    mark_started,
    require_journal_entry,
)

logger = logging.getLogger(__name__)

FAILURE_TRANSPORT = "transport"
FAILURE_DECODE = "decode"
FAILURE_INTERNAL = "internal"


@dataclass(frozen=True)
class Completed:
    parsed: ParsedJournal
    ai_response: str
    created: CreatedItems


@dataclass(frozen=True)
class Failed:
    kind: str
    error: str
    ai_response: Optional[str] = None


ProcessingOutcome = Union[Completed, Failed]


def _run_stages(*, entry_id: str, user_id: str, raw_text: str, entry_date: str) -> ProcessingOutcome:
    extraction = request_extraction(raw_text)
    if isinstance(extraction, ExtractionFailed):
        return Failed(kind=FAILURE_TRANSPORT, error=extraction.message, ai_response=extraction.raw_response)

    decoded = decode_response(extraction.content)
    if isinstance(decoded, DecodeFailed):
        return Failed(kind=FAILURE_DECODE, error=decoded.reason, ai_response=decoded.raw_text)

    report = write_derived_records(
        user_id=user_id,
        journal_entry_id=entry_id,
        entry_date=entry_date,
        parsed=decoded.parsed,
    )
    return Completed(parsed=decoded.parsed, ai_response=extraction.content, created=report.created_items())


def process_entry(*, entry_id: str, user_id: str, raw_text: str, entry_date: str) -> ProcessingOutcome:
    """Run the pipeline for an entry already in ``processing`` and persist the outcome."""
    try:
        outcome = _run_stages(entry_id=entry_id, user_id=user_id, raw_text=raw_text, entry_date=entry_date)
    except Exception as exc:
        # Record the failure so the entry does not stay stuck in processing.
        logger.exception("journal %s: pipeline crashed", entry_id)
        outcome = Failed(kind=FAILURE_INTERNAL, error=f"Journal processing error: {exc}")

    try:
        if isinstance(outcome, Completed):
            mark_completed(
                user_id=user_id,
                journal_id=entry_id,
                parsed_data=outcome.parsed,
                ai_response=outcome.ai_response,
            )
            logger.info("journal %s completed: %s", entry_id, outcome.created.model_dump())
        else:
            mark_failed(user_id=user_id, journal_id=entry_id, error=outcome.error, ai_response=outcome.ai_response)
            logger.warning("journal %s failed (%s): %s", entry_id, outcome.kind, outcome.error)
    except JournalError as exc:
        # Deleted or moved on by another request while the pipeline ran.
        logger.warning("journal %s: result not recorded: %s", entry_id, exc)
        raise OutcomeNotRecordedError(entry_id, exc) from exc
    return outcome


def submit_journal(*, user_id: str, raw_text: str, date: Optional[str] = None) -> Tuple[JournalEntry, ProcessingOutcome]:
    entry = create_journal_entry(user_id=user_id, raw_text=raw_text, date=date)
    outcome = process_entry(entry_id=entry.id, user_id=user_id, raw_text=entry.raw_text, entry_date=entry.date)
    return entry, outcome


def retry_journal(*, user_id: str, journal_id: str) -> Tuple[JournalEntry, ProcessingOutcome]:
    """Re-run a failed entry from its stored text and date, keeping its id."""
    entry = require_journal_entry(user_id=user_id, journal_id=journal_id)
    if not can_retry(entry.processing_status):
        raise InvalidStateError(entry.processing_status.value, "retry")

    mark_retry(user_id=user_id, journal_id=journal_id)
    entry = mark_started(user_id=user_id, journal_id=journal_id)
    outcome = process_entry(entry_id=entry.id, user_id=user_id, raw_text=entry.raw_text, entry_date=entry.date)
    return entry, outcome


def get_processing_status(*, user_id: str, journal_id: str) -> ProcessingStatusResponse:
    entry = require_journal_entry(user_id=user_id, journal_id=journal_id)
    return ProcessingStatusResponse(
        journal_id=entry.id,
        processing_status=entry.processing_status,
        is_processed=entry.is_processed,
        processing_error=entry.processing_error,
        parsed_data=entry.parsed_data,
    )

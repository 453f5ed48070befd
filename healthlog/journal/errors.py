# -*- coding: utf-8 -*-
"""Journal: domain errors raised by storage and pipeline, mapped to HTTP by the API."""

from __future__ import annotations


class JournalError(Exception):
    """Base class for journal processing errors."""


class JournalNotFoundError(JournalError):
    def __init__(self, journal_id: str) -> None:
        super().__init__(f"Journal entry not found: {journal_id}")
        self.journal_id = journal_id


class InvalidStateError(JournalError):
    """A lifecycle transition that the current processing status does not allow."""

    def __init__(self, status: str, event: str) -> None:
        super().__init__(f"Cannot {event} a journal entry in {status} status")
        self.status = status
        self.event = event


class OutcomeNotRecordedError(JournalError):
    """Processing finished but its final status could not be written to the entry."""

    def __init__(self, journal_id: str, cause: JournalError) -> None:
        super().__init__(f"Could not record the processing result for journal entry {journal_id}: {cause}")
        self.journal_id = journal_id
        self.cause = cause

# -*- coding: utf-8 -*-
"""Journal domain: entries, processing lifecycle and the AI parsing pipeline."""

from .pipeline import get_processing_status, process_entry, retry_journal, submit_journal

__all__ = [
    "get_processing_status",
    "process_entry",
    "retry_journal",
    "submit_journal",
]

# -*- coding: utf-8 -*-
"""Journal processing lifecycle.

pending --start--> processing --succeed--> completed
                              --fail-----> failed --retry--> pending

New entries are created directly in ``processing``. ``completed`` has no outgoing
transition, so only ``failed`` entries can be retried.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple

from .errors import InvalidStateError
from .models import ProcessingStatus


class ProcessingEvent(str, Enum):
    start = "start"
    succeed = "succeed"
    fail = "fail"
    retry = "retry"


INITIAL_STATUS = ProcessingStatus.processing

_TRANSITIONS: Dict[Tuple[ProcessingStatus, ProcessingEvent], ProcessingStatus] = {
    (ProcessingStatus.pending, ProcessingEvent.start): ProcessingStatus.processing,
    (ProcessingStatus.processing, ProcessingEvent.succeed): ProcessingStatus.completed,
    (ProcessingStatus.processing, ProcessingEvent.fail): ProcessingStatus.failed,
    (ProcessingStatus.failed, ProcessingEvent.retry): ProcessingStatus.pending,
}


def transition(status: ProcessingStatus | str, event: ProcessingEvent | str) -> ProcessingStatus:
    """Return the status reached by applying ``event``; raise InvalidStateError otherwise."""
    try:
        current = ProcessingStatus(status)
        ev = ProcessingEvent(event)
    except ValueError as exc:
        raise InvalidStateError(str(status), str(event)) from exc
    nxt = _TRANSITIONS.get((current, ev))
    if nxt is None:
        raise InvalidStateError(current.value, ev.value)
    return nxt


def can_retry(status: ProcessingStatus | str) -> bool:
    try:
        transition(status, ProcessingEvent.retry)
    except InvalidStateError:
        return False
    return True

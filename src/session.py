"""
session.py – Client-side state for one analysis at a time.

States: idle → processing → result | error; ``reset()`` goes back to idle.

Each ``begin()`` returns a generation number.  ``complete()`` and ``fail()``
only apply when called with the current generation, so a slow response from
an abandoned request can never overwrite the state of a newer one.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.constants import MSG_ANALYSIS_FAILED
from src.schemas import BillData

log = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    RESULT = "result"
    ERROR = "error"


@dataclass(frozen=True)
class ProcessingState:
    is_processing: bool = False
    error: Optional[str] = None
    result: Optional[BillData] = None

    @property
    def phase(self) -> Phase:
        if self.is_processing:
            return Phase.PROCESSING
        if self.result is not None:
            return Phase.RESULT
        if self.error is not None:
            return Phase.ERROR
        return Phase.IDLE


class SessionBusyError(RuntimeError):
    """Raised by ``begin()`` while another analysis is still in flight."""


class AnalysisSession:
    """Holds the single pending/result/error state of the client."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._state = ProcessingState()

    @property
    def state(self) -> ProcessingState:
        return self._state

    @property
    def can_upload(self) -> bool:
        return not self._state.is_processing

    def begin(self) -> int:
        """Enter processing, discarding any previous result or error."""
        with self._lock:
            if self._state.is_processing:
                raise SessionBusyError("An analysis is already in progress")
            self._generation += 1
            self._state = ProcessingState(is_processing=True)
            return self._generation

    def complete(self, generation: int, result: BillData) -> bool:
        """Store *result*; returns False (and changes nothing) if *generation* is stale."""
        with self._lock:
            if generation != self._generation or not self._state.is_processing:
                log.info("Discarding stale result for generation %d", generation)
                return False
            self._state = ProcessingState(result=result)
            return True

    def fail(self, generation: int, exc: BaseException) -> bool:
        """Record a failure; the user only ever sees the generic message."""
        with self._lock:
            if generation != self._generation or not self._state.is_processing:
                log.info("Discarding stale error for generation %d: %s", generation, exc)
                return False
            log.error("Analysis error: %s", exc)
            self._state = ProcessingState(error=MSG_ANALYSIS_FAILED)
            return True

    def reset(self) -> None:
        """Return to idle; an in-flight request becomes stale."""
        with self._lock:
            self._generation += 1
            self._state = ProcessingState()

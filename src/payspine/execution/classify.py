"""Outcome classification for provider calls.

Maps what came back from one call (decoded body flag, HTTP status, or the
exception raised) to the decision the attempt loop acts on.

Rules, first match wins:

    ==============================  ===============
    condition                       outcome
    ==============================  ===============
    timeout exception               RETRIABLE
    any other exception             TERMINAL
    body result is true             SUCCESS
    no status code                  INDETERMINATE
    status in 429/500/502/503/504   RETRIABLE
    anything else                   TERMINAL
    ==============================  ===============

A body that failed to decode arrives here as ``body_result=False`` with a
synthetic reason; its real status code still decides between the last two
rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

RETRIABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class Outcome(str, Enum):
    """Decision for one attempt."""

    SUCCESS = "success"
    RETRIABLE = "retriable"
    TERMINAL = "terminal"
    INDETERMINATE = "indeterminate"

    @property
    def is_final(self) -> bool:
        """True when the attempt loop must stop."""
        return self is not Outcome.RETRIABLE


class ExceptionKind(str, Enum):
    """How a call failed, if it raised."""

    NONE = "none"
    TIMEOUT = "timeout"
    OTHER = "other"

    @classmethod
    def of(cls, error: BaseException | None) -> ExceptionKind:
        if error is None:
            return cls.NONE
        if isinstance(error, TimeoutError):
            return cls.TIMEOUT
        return cls.OTHER


@dataclass(frozen=True)
class CallOutcome:
    """Raw result of one provider call."""

    body_result: bool = False
    status_code: int | None = None
    exception_kind: ExceptionKind = ExceptionKind.NONE
    reason: str | None = None

    @classmethod
    def from_exception(cls, error: BaseException) -> CallOutcome:
        return cls(exception_kind=ExceptionKind.of(error), reason=f"{type(error).__name__}: {error}")


def classify(outcome: CallOutcome) -> Outcome:
    """Apply the classification rules to one call outcome."""
    if outcome.exception_kind is ExceptionKind.TIMEOUT:
        return Outcome.RETRIABLE
    if outcome.exception_kind is ExceptionKind.OTHER:
        return Outcome.TERMINAL
    if outcome.body_result:
        return Outcome.SUCCESS
    if outcome.status_code is None:
        return Outcome.INDETERMINATE
    if outcome.status_code in RETRIABLE_STATUS_CODES:
        return Outcome.RETRIABLE
    return Outcome.TERMINAL

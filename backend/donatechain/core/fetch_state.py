"""Fetch States: per-source pipeline state for the reconciliation view.

Invariants:
    - Exactly one of Idle | Loading | Loaded | Failed per source at any time
    - Loaded.records is a tuple in source delivery order (never re-sorted)
    - Failed carries ErrorInfo; whether retry is offered comes from error.retryable

Design Decisions:
    - Tagged union of frozen dataclasses, dispatched with isinstance (ADR: no inheritance tree)
    - Loaded.stale marks read-after-write polling that gave up (eventual consistency accepted)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from donatechain.core.errors import ErrorInfo
from donatechain.core.records import DonationRecord


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Loaded:
    records: tuple[DonationRecord, ...]
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stale: bool = False


@dataclass(frozen=True)
class Failed:
    error: ErrorInfo


FetchState = Idle | Loading | Loaded | Failed


def state_name(state: FetchState) -> str:
    return type(state).__name__.lower()


def offers_retry(state: FetchState) -> bool:
    """Whether the UI should present a retry action for this state."""
    if isinstance(state, Failed):
        return state.error.retryable
    return isinstance(state, Loaded)

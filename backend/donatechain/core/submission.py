"""Pending Submission: forward-only lifecycle of one donation transaction.

Invariants:
    - States advance strictly in SubmissionState declaration order (skips allowed, reversals not)
    - FAILED is reachable from every non-terminal state; CONFIRMED and FAILED are terminal
    - tx_handle, once set, is never cleared: a FAILED submission keeps it (timeouts especially)
    - Illegal transitions raise InvalidTransitionError (programming error, not user error)

Design Decisions:
    - Mutable dataclass owned by exactly one DonationSubmitter task; observers read, never write
    - asyncio.Event for completion: callers await wait() instead of polling state
"""

import asyncio
from dataclasses import dataclass, field

from donatechain.core.domain_types import SubmissionState
from donatechain.core.errors import ErrorInfo, InvalidTransitionError

_ORDER = list(SubmissionState)
TERMINAL_STATES = frozenset({SubmissionState.CONFIRMED, SubmissionState.FAILED})


def can_transition(current: SubmissionState, target: SubmissionState) -> bool:
    """Pure transition rule for the submission lifecycle."""
    if current in TERMINAL_STATES:
        return False
    if target is SubmissionState.FAILED:
        return True
    return _ORDER.index(target) > _ORDER.index(current)


@dataclass
class PendingSubmission:
    """A donation transaction awaiting confirmation."""

    amount_eth: str
    message: str
    amount_wei: int | None = None
    state: SubmissionState = SubmissionState.VALIDATING
    tx_handle: str | None = None
    error: ErrorInfo | None = None
    history: list[SubmissionState] = field(
        default_factory=lambda: [SubmissionState.VALIDATING],
    )
    _done: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def failed_with_timeout(self) -> bool:
        return self.state is SubmissionState.FAILED and (
            self.error is not None and self.error.code == "TIMEOUT"
        )

    def advance(self, target: SubmissionState) -> None:
        if target is SubmissionState.FAILED:
            raise InvalidTransitionError(self.state.value, target.value)
        self._move(target)
        if target is SubmissionState.CONFIRMED:
            self._done.set()

    def attach_handle(self, tx_handle: str) -> None:
        if self.tx_handle is not None and self.tx_handle != tx_handle:
            raise InvalidTransitionError(
                f"handle {self.tx_handle}", f"handle {tx_handle}",
            )
        self.tx_handle = tx_handle

    def fail(self, cause: BaseException | ErrorInfo) -> None:
        """Move to FAILED with a captured cause; tx_handle is preserved."""
        if isinstance(cause, ErrorInfo):
            info = cause
        else:
            info = ErrorInfo.from_exception(cause)
        self._move(SubmissionState.FAILED)
        self.error = info
        self._done.set()

    async def wait(self) -> "PendingSubmission":
        await self._done.wait()
        return self

    def _move(self, target: SubmissionState) -> None:
        if not can_transition(self.state, target):
            raise InvalidTransitionError(self.state.value, target.value)
        self.state = target
        self.history.append(target)


def describe_failure(submission: PendingSubmission) -> str:
    """User-facing one-liner for a failed submission."""
    if submission.error is None:
        return ""
    if submission.failed_with_timeout and submission.tx_handle:
        return (
            f"Still waiting for {submission.tx_handle}. "
            "It may still confirm, so check its status before donating again."
        )
    return submission.error.message


"""Reconciliation View: two independent donation pipelines behind one source selector.

Invariants:
    - Each source has its own Idle | Loading | Loaded | Failed state; one never waits on the other
    - Concurrent refreshes of the same source share one in-flight fetch
    - select() never refetches a Loaded (or Failed) source; only an Idle one, when auto_load is on
    - Records keep source order (mirror: ascending id, chain: insertion order), never re-sorted
    - Fetch errors end as Failed(ErrorInfo); nothing propagates to the caller

Design Decisions:
    - Sources are a SourceId -> fetcher map plus a SourceId -> FetchState map (tagged union, no subclasses)
    - In-flight fetches are shielded: a cancelled caller does not strand a source in Loading
    - Read-after-write: after a confirmed donation, poll ON_CHAIN until the count grows, then
      give up and keep the last Loaded list marked stale (eventual consistency accepted)
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from donatechain.core.boundary_protocols import RecordFetcher
from donatechain.core.domain_types import SourceId
from donatechain.core.errors import DonateChainError, ErrorInfo
from donatechain.core.fetch_state import Failed, FetchState, Idle, Loaded, Loading, state_name
from donatechain.core.records import DonationRecord, total_wei
from donatechain.core.units import format_ether

logger = logging.getLogger(__name__)

ViewListener = Callable[[SourceId, FetchState], Any]


@dataclass(frozen=True)
class SourceSummary:
    source: SourceId
    count: int
    total_wei: int

    @property
    def total_eth(self) -> str:
        return format_ether(self.total_wei)


class ReconciliationView:
    """Per-source fetch state with a single active-source selector."""

    def __init__(
        self,
        fetchers: Mapping[SourceId, RecordFetcher],
        active_source: SourceId = SourceId.MIRROR,
        auto_load: bool = True,
        read_after_write_attempts: int = 5,
        read_after_write_interval_seconds: float = 3.0,
    ):
        if active_source not in fetchers:
            raise ValueError(f"no fetcher registered for {active_source.value}")
        self._fetchers = dict(fetchers)
        self._states: dict[SourceId, FetchState] = {s: Idle() for s in self._fetchers}
        self._inflight: dict[SourceId, asyncio.Task] = {}
        self._listeners: list[ViewListener] = []
        self._active = active_source
        self.auto_load = auto_load
        self.read_after_write_attempts = read_after_write_attempts
        self.read_after_write_interval_seconds = read_after_write_interval_seconds

    # --- Reading --------------------------------------------------------------

    @property
    def active_source(self) -> SourceId:
        return self._active

    @property
    def active_state(self) -> FetchState:
        return self._states[self._active]

    @property
    def active_records(self) -> tuple[DonationRecord, ...]:
        return self.records(self._active)

    @property
    def sources(self) -> tuple[SourceId, ...]:
        return tuple(self._fetchers)

    def state(self, source: SourceId) -> FetchState:
        return self._states[source]

    def records(self, source: SourceId) -> tuple[DonationRecord, ...]:
        state = self._states[source]
        return state.records if isinstance(state, Loaded) else ()

    def summary(self, source: SourceId) -> SourceSummary:
        records = self.records(source)
        return SourceSummary(source=source, count=len(records), total_wei=total_wei(records))

    # --- Actions --------------------------------------------------------------

    def select(self, source: SourceId) -> FetchState:
        """Switch the rendered source. Starts a load only if that source is still Idle."""
        if source not in self._fetchers:
            raise ValueError(f"no fetcher registered for {source.value}")
        self._active = source
        if self.auto_load and isinstance(self._states[source], Idle):
            self._start(source)
        return self._states[source]

    async def refresh(self, source: SourceId) -> FetchState:
        """Explicit (re)fetch of one source; joins an in-flight fetch if there is one."""
        return await asyncio.shield(self._start(source))

    async def refresh_all(self) -> dict[SourceId, FetchState]:
        results = await asyncio.gather(*(self.refresh(s) for s in self._fetchers))
        return dict(zip(self._fetchers, results))

    async def refresh_after_donation(self, previous_count: int | None = None) -> FetchState:
        """Poll ON_CHAIN until it shows more than previous_count records."""
        source = SourceId.ON_CHAIN
        if source not in self._fetchers:
            raise ValueError("no on-chain fetcher registered")
        current = self._states[source]
        if previous_count is not None:
            baseline: int | None = previous_count
        elif isinstance(current, Loaded):
            baseline = len(current.records)
        else:
            baseline = None

        state: FetchState = current
        # Without a baseline growth is unobservable: one read, reported stale.
        attempts = 1 if baseline is None else max(1, self.read_after_write_attempts)
        for attempt in range(attempts):
            if attempt:
                await asyncio.sleep(self.read_after_write_interval_seconds)
            state = await self.refresh(source)
            if baseline is not None and isinstance(state, Loaded) and len(state.records) > baseline:
                return state

        logger.info(
            "Ledger still shows the pre-donation count; accepting eventual consistency",
            extra={"source": source.value, "count": baseline},
        )
        if isinstance(state, Loaded):
            state = Loaded(state.records, state.loaded_at, stale=True)
            self._set(source, state)
        return state

    def add_listener(self, listener: ViewListener) -> None:
        self._listeners.append(listener)

    # --- Internals ------------------------------------------------------------

    def _start(self, source: SourceId) -> asyncio.Task:
        task = self._inflight.get(source)
        if task is None or task.done():
            self._set(source, Loading())
            task = asyncio.create_task(self._load(source))
            self._inflight[source] = task
        return task

    async def _load(self, source: SourceId) -> FetchState:
        try:
            records = tuple(await self._fetchers[source]())
        except DonateChainError as e:
            logger.warning(f"{source.value} fetch failed: {e.message}",
                extra={"source": source.value, "error_code": e.code})
            state: FetchState = Failed(e.to_info())
        except Exception as e:
            logger.error(f"Unexpected {source.value} fetch failure: {e}", exc_info=True,
                extra={"source": source.value})
            state = Failed(ErrorInfo.from_exception(e))
        else:
            state = Loaded(records)
        self._set(source, state)
        return state

    def _set(self, source: SourceId, state: FetchState) -> None:
        self._states[source] = state
        logger.debug(f"{source.value} -> {state_name(state)}", extra={"source": source.value})
        for listener in list(self._listeners):
            try:
                listener(source, state)
            except Exception as e:
                logger.error(f"View listener failed: {e}", exc_info=True)

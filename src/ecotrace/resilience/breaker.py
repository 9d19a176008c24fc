"""Per-key circuit breaker for external provider calls.

States:
    closed     normal; failures are counted
    open       fail fast with CircuitOpen until the cooldown has elapsed
    half_open  one trial call is in flight; everyone else fails fast

Rules for execute(key, operation):
    1. open and cooldown not elapsed   -> CircuitOpen, operation not invoked
    2. open and cooldown elapsed       -> half_open, exactly one trial allowed
    3. success                         -> failure_count = 0, closed
    4. failure                         -> failure_count += 1; open at threshold
    5. no failure for failure_memory   -> failure_count = 0, closed (decay)

Every read-modify-write of a key's state happens under one lock, and the lock
is never held across an await.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import TypeVar

from ecotrace.errors import CircuitOpen
from ecotrace.observability import emit
from ecotrace.observability.events import (
    CircuitClosed,
    CircuitHalfOpened,
    CircuitOpened,
    now_iso,
)

T = TypeVar("T")


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitState:
    failure_count: int = 0
    last_failure: float | None = None  # clock() of the most recent failure
    state: BreakerState = BreakerState.CLOSED
    trial_in_flight: bool = False


class CircuitBreaker:
    """Tracks failures per key (one key per provider)."""

    def __init__(
        self,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60.0,
        failure_memory_seconds: float = 300.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {failure_threshold}")
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self.failure_memory_seconds = failure_memory_seconds
        self._clock = clock
        self._states: dict[str, CircuitState] = {}
        self._lock = threading.Lock()

    async def execute(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` unless the circuit for ``key`` rejects it."""
        self._admit(key)
        try:
            result = await operation()
        except Exception:
            self._record_failure(key)
            raise
        except BaseException:
            # Cancelled (deadline, shutdown): not the provider's fault.
            self._release_trial(key)
            raise
        self._record_success(key)
        return result

    def state(self, key: str) -> CircuitState:
        """Snapshot of ``key``'s state, with decay applied."""
        with self._lock:
            st = self._states.setdefault(key, CircuitState())
            decayed_from = self._decay_locked(st, self._clock())
            snapshot = replace(st)
        self._announce_decay(key, decayed_from)
        return snapshot

    def states(self) -> dict[str, CircuitState]:
        decayed: list[tuple[str, BreakerState | None]] = []
        with self._lock:
            now = self._clock()
            for key, st in self._states.items():
                decayed.append((key, self._decay_locked(st, now)))
            snapshot = {key: replace(st) for key, st in self._states.items()}
        for key, previous in decayed:
            self._announce_decay(key, previous)
        return snapshot

    def retry_after(self, key: str) -> float:
        """Seconds until an open circuit admits a trial (0 when not open)."""
        with self._lock:
            st = self._states.get(key)
            if st is None or st.state is not BreakerState.OPEN or st.last_failure is None:
                return 0.0
            return max(0.0, self.cooldown_seconds - (self._clock() - st.last_failure))

    def reset(self, key: str | None = None) -> None:
        """Forget failures for one key, or for all of them."""
        with self._lock:
            if key is None:
                self._states.clear()
            else:
                self._states.pop(key, None)

    # -- transitions ----------------------------------------------------------

    def _admit(self, key: str) -> None:
        rejection: CircuitOpen | None = None
        half_opened = False
        with self._lock:
            st = self._states.setdefault(key, CircuitState())
            now = self._clock()
            decayed_from = self._decay_locked(st, now)

            if st.state is BreakerState.OPEN:
                elapsed = now - (st.last_failure or now)
                if elapsed < self.cooldown_seconds:
                    rejection = CircuitOpen(key, retry_after=self.cooldown_seconds - elapsed)
                else:
                    st.state = BreakerState.HALF_OPEN
                    st.trial_in_flight = True
                    half_opened = True
            elif st.state is BreakerState.HALF_OPEN:
                if st.trial_in_flight:
                    rejection = CircuitOpen(key)
                else:
                    st.trial_in_flight = True

        self._announce_decay(key, decayed_from)
        if rejection is not None:
            raise rejection
        if half_opened:
            emit(CircuitHalfOpened(key=key, timestamp=now_iso()))

    def _record_success(self, key: str) -> None:
        with self._lock:
            st = self._states.setdefault(key, CircuitState())
            previous = st.state
            st.failure_count = 0
            st.last_failure = None
            st.state = BreakerState.CLOSED
            st.trial_in_flight = False

        if previous is not BreakerState.CLOSED:
            emit(CircuitClosed(key=key, previous_state=previous.value, reason="success", timestamp=now_iso()))

    def _record_failure(self, key: str) -> None:
        with self._lock:
            st = self._states.setdefault(key, CircuitState())
            st.failure_count += 1
            st.last_failure = self._clock()
            st.trial_in_flight = False
            opened = st.failure_count >= self.failure_threshold and st.state is not BreakerState.OPEN
            if st.failure_count >= self.failure_threshold:
                st.state = BreakerState.OPEN
            count = st.failure_count

        if opened:
            emit(
                CircuitOpened(
                    key=key,
                    failure_count=count,
                    cooldown_seconds=self.cooldown_seconds,
                    timestamp=now_iso(),
                )
            )

    def _release_trial(self, key: str) -> None:
        with self._lock:
            st = self._states.get(key)
            if st is not None and st.state is BreakerState.HALF_OPEN:
                st.trial_in_flight = False

    def _decay_locked(self, st: CircuitState, now: float) -> BreakerState | None:
        """Forget stale failures. Returns the prior state if the circuit was reopened to closed."""
        if st.failure_count == 0 or st.last_failure is None or st.trial_in_flight:
            return None
        if now - st.last_failure <= self.failure_memory_seconds:
            return None
        previous = st.state
        st.failure_count = 0
        st.last_failure = None
        st.state = BreakerState.CLOSED
        return previous if previous is not BreakerState.CLOSED else None

    def _announce_decay(self, key: str, previous: BreakerState | None) -> None:
        if previous is None:
            return
        emit(CircuitClosed(key=key, previous_state=previous.value, reason="decay", timestamp=now_iso()))

"""API key pool: per-key usage tracking and selection.

Keys are held in a fixed positional table and referred to everywhere else
by their index. The secret is only handed out through ``secret()`` when a
request is about to be sent.

A key is eligible when it is below the per-window call cap, at least
``min_interval`` seconds past its last call, and not suspended. A key is
suspended for ``cooldown`` seconds once it reaches
``max_consecutive_errors`` failures in a row. Suspension is lifted by a
deadline check at selection time; nothing runs in the background.

Usage:
    pool = KeyPool(["k1", "k2"])
    for key_id in pool.select_eligible(2):
        pool.record_usage(key_id)
        ...
        pool.record_success(key_id)  # or pool.record_failure(key_id)
"""

import time
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from app.core.logging import get_logger

logger = get_logger(__name__)


# ============================================================================
# Data Classes
# ============================================================================


@dataclass
class KeyUsage:
    """Usage bookkeeping for one key."""

    id: int
    requests: deque[float] = field(default_factory=deque)  # call timestamps, oldest first
    last_request_at: float | None = None
    consecutive_errors: int = 0
    suspended_until: float | None = None

    @property
    def label(self) -> str:
        return f"key-{self.id + 1}"

    @property
    def is_active(self) -> bool:
        return self.suspended_until is None


@dataclass
class KeyStatus:
    id: int
    label: str
    requests: int
    available: bool
    errors: int
    suspended: bool


@dataclass
class KeyPoolStatus:
    can_make_request: bool
    wait_time: float
    requests_remaining: int
    active_keys: int
    key_statuses: list[KeyStatus]


# ============================================================================
# Key Pool
# ============================================================================


class KeyPool:
    """Tracks usage of a fixed set of API keys and picks the least used ones."""

    def __init__(
        self,
        api_keys: Sequence[str],
        *,
        max_requests_per_key: int = 20,
        time_window: float = 60.0,
        min_interval: float = 1.0,
        max_consecutive_errors: int = 3,
        cooldown: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._secrets: tuple[str, ...] = tuple(api_keys)
        self._usage: list[KeyUsage] = [KeyUsage(id=i) for i in range(len(self._secrets))]
        self.max_requests_per_key = max_requests_per_key
        self.time_window = time_window
        self.min_interval = min_interval
        self.max_consecutive_errors = max_consecutive_errors
        self.cooldown = cooldown
        self._clock = clock

        logger.info("Key pool initialized", keys=len(self._secrets))

    def __len__(self) -> int:
        return len(self._secrets)

    @property
    def is_configured(self) -> bool:
        return bool(self._secrets)

    def secret(self, key_id: int) -> str:
        return self._secrets[key_id]

    def label(self, key_id: int) -> str:
        return self._usage[key_id].label

    def usage(self, key_id: int) -> KeyUsage:
        return self._usage[key_id]

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _refresh(self, usage: KeyUsage, now: float) -> None:
        """Drop timestamps outside the window and lift expired suspensions."""
        while usage.requests and now - usage.requests[0] >= self.time_window:
            usage.requests.popleft()

        if usage.suspended_until is not None and now >= usage.suspended_until:
            usage.suspended_until = None
            usage.consecutive_errors = 0
            logger.info("Key reinstated after cooldown", key=usage.label)

    def _is_eligible(self, usage: KeyUsage, now: float) -> bool:
        if not usage.is_active:
            return False
        if usage.consecutive_errors >= self.max_consecutive_errors:
            return False
        if len(usage.requests) >= self.max_requests_per_key:
            return False
        if usage.last_request_at is not None and now - usage.last_request_at < self.min_interval:
            return False
        return True

    def select_eligible(self, count: int = 1) -> list[int]:
        """Return up to ``count`` eligible key ids, least used first.

        Selecting does not count as usage; call ``record_usage`` for every
        key actually used.
        """
        if count <= 0:
            return []

        now = self._clock()
        for usage in self._usage:
            self._refresh(usage, now)

        eligible = [u for u in self._usage if self._is_eligible(u, now)]
        eligible.sort(key=lambda u: (len(u.requests), u.id))
        return [u.id for u in eligible[:count]]

    def seconds_until_available(self) -> float | None:
        """Shortest wait until some key becomes eligible.

        Returns 0.0 if one already is, None for an empty pool.
        """
        if not self._usage:
            return None

        now = self._clock()
        waits = []
        for usage in self._usage:
            self._refresh(usage, now)
            ready_at = now
            if usage.suspended_until is not None:
                ready_at = max(ready_at, usage.suspended_until)
            if len(usage.requests) >= self.max_requests_per_key:
                # Enough of the oldest calls must age out to get under the cap
                oldest_blocking = usage.requests[len(usage.requests) - self.max_requests_per_key]
                ready_at = max(ready_at, oldest_blocking + self.time_window)
            if usage.last_request_at is not None:
                ready_at = max(ready_at, usage.last_request_at + self.min_interval)
            waits.append(ready_at - now)
        return max(0.0, min(waits))

    # ------------------------------------------------------------------
    # Outcome recording
    # ------------------------------------------------------------------

    def record_usage(self, key_id: int) -> None:
        usage = self._usage[key_id]
        now = self._clock()
        usage.requests.append(now)
        usage.last_request_at = now

    def record_failure(self, key_id: int) -> None:
        usage = self._usage[key_id]
        usage.consecutive_errors += 1
        if usage.consecutive_errors >= self.max_consecutive_errors and usage.is_active:
            usage.suspended_until = self._clock() + self.cooldown
            logger.warning(
                "Key suspended",
                key=usage.label,
                consecutive_errors=usage.consecutive_errors,
                cooldown=self.cooldown,
            )

    def record_success(self, key_id: int) -> None:
        usage = self._usage[key_id]
        usage.consecutive_errors = 0
        usage.suspended_until = None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> KeyPoolStatus:
        now = self._clock()
        statuses = []
        for usage in self._usage:
            self._refresh(usage, now)
            statuses.append(
                KeyStatus(
                    id=usage.id,
                    label=usage.label,
                    requests=len(usage.requests),
                    available=self._is_eligible(usage, now),
                    errors=usage.consecutive_errors,
                    suspended=not usage.is_active,
                )
            )

        active_keys = sum(1 for s in statuses if s.available)
        remaining = sum(max(0, self.max_requests_per_key - s.requests) for s in statuses)
        wait_time = 0.0 if active_keys else (self.seconds_until_available() or 0.0)

        return KeyPoolStatus(
            can_make_request=active_keys > 0,
            wait_time=wait_time,
            requests_remaining=remaining,
            active_keys=active_keys,
            key_statuses=statuses,
        )

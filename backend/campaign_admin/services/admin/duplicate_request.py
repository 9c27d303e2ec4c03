"""
Duplicate-request suppression for mutating admin endpoints.

Rejects a repeated state-changing request from the same actor to the same
endpoint and target inside a short window (double-clicks, client retry
storms). It looks only at request shape, never at payload content, and runs
before any storage access. Optimistic version checks still guard correctness;
this only smooths accidental resubmits.

State is process-local and lost on restart.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import math
import threading
import time
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable

DEFAULT_WINDOW_MS = 3000
DEFAULT_SWEEP_INTERVAL_MS = 5000
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
TARGET_HASH_LENGTH = 16

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class Admitted:
    pass


@dataclass(frozen=True)
class Rejected:
    retry_after_seconds: int


DedupDecision = Admitted | Rejected

ADMITTED = Admitted()


def make_request_key(
    actor_id: object, http_method: str, path: str, target_identifier: object
) -> str:
    target = "" if target_identifier is None else str(target_identifier)
    target_hash = (
        hashlib.sha256(target.encode()).hexdigest()[:TARGET_HASH_LENGTH] if target else ""
    )
    return f"{actor_id}:{http_method.upper()}:{path}:{target_hash}"


class DuplicateRequestSuppressor:
    """In-memory dedup cache with an injected clock and explicit sweep task.

    ``clock`` returns seconds (``time.monotonic`` by default). The map is
    guarded by a ``threading.Lock`` so two concurrent registrations of the
    same key can never both see it as absent.
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        clock: Clock = time.monotonic,
    ) -> None:
        if window_ms <= 0:
            raise ValueError("window_ms must be greater than 0")
        if sweep_interval_ms <= 0:
            raise ValueError("sweep_interval_ms must be greater than 0")
        self.window_ms = window_ms
        self.sweep_interval_ms = sweep_interval_ms
        self._clock = clock
        self._entries: dict[str, float] = {}
        self._lock = threading.Lock()
        self._task: asyncio.Task[None] | None = None

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def check_and_register(
        self,
        actor_id: object,
        http_method: str,
        path: str,
        target_identifier: object,
    ) -> DedupDecision:
        if http_method.upper() not in MUTATING_METHODS:
            return ADMITTED

        key = make_request_key(actor_id, http_method, path, target_identifier)
        with self._lock:
            now = self._now_ms()
            last_seen = self._entries.get(key)
            if last_seen is not None:
                elapsed = now - last_seen
                if elapsed < self.window_ms:
                    retry_after = math.ceil((self.window_ms - elapsed) / 1000)
                    logger.warning(
                        "duplicate_request_rejected actor_id=%s method=%s path=%s "
                        "elapsed_ms=%d retry_after=%d",
                        actor_id,
                        http_method.upper(),
                        path,
                        elapsed,
                        retry_after,
                    )
                    return Rejected(retry_after_seconds=retry_after)
            self._entries[key] = now

        logger.debug("duplicate_request_registered key=%s", key)
        return ADMITTED

    def sweep(self) -> int:
        """Drop entries older than the window; returns how many were removed."""
        with self._lock:
            now = self._now_ms()
            expired = [
                key for key, seen in self._entries.items() if now - seen > self.window_ms
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def status(self) -> dict[str, Any]:
        with self._lock:
            keys = list(self._entries)
        return {"size": len(keys), "keys": keys, "window_ms": self.window_ms}

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(
            "duplicate_request_sweeper_started interval_ms=%d window_ms=%d",
            self.sweep_interval_ms,
            self.window_ms,
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("duplicate_request_sweeper_stopped")

    async def _sweep_loop(self) -> None:
        interval = self.sweep_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            removed = self.sweep()
            if removed:
                logger.debug("duplicate_request_sweep removed=%d", removed)

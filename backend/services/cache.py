"""File-backed snapshot cache for the upstream product catalog.

A single slot: at most one snapshot exists, persisted as one JSON file whose
modification time is the staleness clock. A snapshot younger than the
freshness window is served from disk (memoized in memory per mtime); anything
else triggers a refetch that overwrites the file. There is no stale-on-error
fallback: once a refresh is needed, its failure is the caller's failure.

Concurrent misses share one in-flight refresh, so a burst of requests hitting
an expired cache makes a single upstream call.

Note: each uvicorn worker has its own in-flight token. With --workers 2 a
cold cache may be fetched twice (once per worker); the file write is an
atomic rename, so the last writer simply wins.
"""

import asyncio
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable

from errors import FetchFailedError
from services.upstream import validate_payload

logger = logging.getLogger(__name__)

CACHE_DURATION = 10 * 60


@dataclass(frozen=True)
class Snapshot:
    payload: dict[str, Any]
    captured_at: float

    @property
    def products(self) -> list[dict[str, Any]]:
        return self.payload["products"]


class SnapshotCache:
    def __init__(
        self,
        path: Path | str,
        fetcher: Callable[[], Awaitable[dict]],
        ttl_seconds: float = CACHE_DURATION,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.ttl_seconds = ttl_seconds
        self._fetcher = fetcher
        self._clock = clock
        self._memo: Snapshot | None = None
        self._inflight: asyncio.Future | None = None

    async def get_snapshot(self) -> Snapshot:
        """Return a snapshot no older than the freshness window."""
        snapshot = await asyncio.to_thread(self._read_fresh)
        if snapshot is not None:
            return snapshot
        return await self._refresh_once()

    def describe(self) -> dict:
        """Cache status for health reporting. Never contacts upstream."""
        try:
            mtime = self.path.stat().st_mtime
        except OSError:
            return {"path": str(self.path), "present": False, "age_seconds": None, "fresh": False}
        age = self._clock() - mtime
        return {
            "path": str(self.path),
            "present": True,
            "age_seconds": round(age, 1),
            "fresh": age < self.ttl_seconds,
        }

    def clear(self) -> None:
        """Forget the in-memory copy and remove the persisted snapshot."""
        self._memo = None
        self.path.unlink(missing_ok=True)
        logger.info("Snapshot cache cleared: %s", self.path)

    # -- read path ---------------------------------------------------------

    def _read_fresh(self) -> Snapshot | None:
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            logger.debug("No persisted snapshot at %s", self.path)
            return None
        except OSError as e:
            logger.warning("Cannot stat snapshot %s: %s", self.path, e)
            return None

        age = self._clock() - mtime
        if age >= self.ttl_seconds:
            logger.info("Snapshot is stale (age %.0fs >= %.0fs)", age, self.ttl_seconds)
            return None

        if self._memo is not None and self._memo.captured_at == mtime:
            logger.debug("Snapshot cache hit (memory, age %.0fs)", age)
            return self._memo

        try:
            payload = validate_payload(json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, ValueError, FetchFailedError) as e:
            logger.warning("Persisted snapshot unreadable, refetching: %s", e)
            return None

        logger.debug("Snapshot cache hit (disk, age %.0fs)", age)
        self._memo = Snapshot(payload=payload, captured_at=mtime)
        return self._memo

    # -- refresh path ------------------------------------------------------

    async def _refresh_once(self) -> Snapshot:
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh())
            self._inflight.add_done_callback(self._clear_inflight)
        else:
            logger.debug("Joining in-flight snapshot refresh")
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Future) -> None:
        if self._inflight is task:
            self._inflight = None
        # mark the exception retrieved even if every waiter was cancelled
        if not task.cancelled():
            task.exception()

    async def _refresh(self) -> Snapshot:
        payload = await self._fetcher()
        captured_at = await asyncio.to_thread(self._persist, payload)
        self._memo = Snapshot(payload=payload, captured_at=captured_at)
        logger.info("Snapshot refreshed: %d products written to %s", len(self._memo.products), self.path)
        return self._memo

    def _persist(self, payload: dict) -> float:
        """Write the payload verbatim via temp file + atomic rename; return the new mtime."""
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh)
            os.replace(tmp_name, self.path)
            return self.path.stat().st_mtime
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise FetchFailedError(f"Could not persist snapshot to {self.path}: {e}") from e

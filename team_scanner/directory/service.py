from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Hashable, TypeVar

from pydantic import ValidationError

from team_scanner.database.cache_store import STATS_CACHE_KEY, TEAM_CACHE_KEY, CacheStore, MemoryCacheStore
from team_scanner.directory.client import DirectoryClient
from team_scanner.directory.schemas import QuickStatsPayload, TeamPayload
from team_scanner.exceptions import CacheStoreError, DirectoryError, TeamNotFoundError
from team_scanner.utils.types import QuickStats, TeamInfo

logger = logging.getLogger("team_scanner.directory")

T = TypeVar("T")


class _NotFound:
    _instance: "_NotFound | None" = None

    def __new__(cls) -> "_NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FOUND"


# confirmed absence, never re-fetched
NOT_FOUND = _NotFound()


def stats_cache_key(number: str, season: int | None = None) -> str:
    return f"{number}-{season or 'current'}"


class TeamLookupService:
    def __init__(self, client: DirectoryClient, store: CacheStore | None = None) -> None:
        self.client = client
        self.store: CacheStore = store if store is not None else MemoryCacheStore()
        self._lock = threading.RLock()
        self._load_lock = threading.Lock()
        self._loaded = False
        self._team_cache: dict[str, TeamInfo | _NotFound] = {}
        self._stats_cache: dict[str, QuickStats] = {}
        self._inflight: dict[Hashable, Future[Any]] = {}
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cache-writer")
        self._pending_writes: set[Future[None]] = set()

    # -- public API -------------------------------------------------------

    def get_team_info(self, number: str) -> TeamInfo | None:
        key = number.strip()
        if not key:
            return None
        self._ensure_loaded()

        with self._lock:
            if key in self._team_cache:
                entry = self._team_cache[key]
                return None if entry is NOT_FOUND else entry  # type: ignore[return-value]
            future, owner = self._claim(("team", key))

        if not owner:
            return future.result()
        return self._run_owned(("team", key), future, lambda: self._fetch_team(key))

    def get_quick_stats(self, number: str, season: int | None = None) -> QuickStats | None:
        number = number.strip()
        if not number:
            return None
        key = stats_cache_key(number, season)
        self._ensure_loaded()

        with self._lock:
            if key in self._stats_cache:
                return self._stats_cache[key]
            future, owner = self._claim(("stats", key))

        if not owner:
            return future.result()
        return self._run_owned(("stats", key), future, lambda: self._fetch_stats(number, season, key))

    def clear_cache(self) -> None:
        with self._load_lock:
            with self._lock:
                self._team_cache.clear()
                self._stats_cache.clear()
                self._loaded = True
        self._submit_write(lambda: self._delete_blobs())
        self.flush()
        logger.info("Team cache cleared", extra={"event": "cache_cleared"})

    def flush(self, timeout: float | None = None) -> None:
        with self._lock:
            pending = list(self._pending_writes)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        self.flush()
        self._writer.shutdown(wait=True)

    @property
    def cached_team_count(self) -> int:
        with self._lock:
            return len(self._team_cache)

    # -- in-flight de-duplication -----------------------------------------

    def _claim(self, key: Hashable) -> tuple[Future[Any], bool]:
        # caller holds self._lock
        future = self._inflight.get(key)
        if future is not None:
            return future, False
        future = Future()
        self._inflight[key] = future
        return future, True

    def _run_owned(self, key: Hashable, future: Future[Any], fetch: Callable[[], T]) -> T | None:
        result: T | None = None
        try:
            result = fetch()
        except Exception:
            logger.exception("Directory lookup crashed", extra={"event": "lookup_crashed", "key": str(key)})
        finally:
            with self._lock:
                self._inflight.pop(key, None)
            future.set_result(result)
        return result

    # -- fetching ---------------------------------------------------------

    def _fetch_team(self, number: str) -> TeamInfo | None:
        try:
            info = self.client.fetch_team(number)
        except TeamNotFoundError:
            logger.info("Team not found", extra={"event": "team_not_found", "team": number})
            with self._lock:
                self._team_cache[number] = NOT_FOUND
            self._persist_teams()
            return None
        except DirectoryError as exc:
            logger.warning(
                "Team lookup failed",
                extra={"event": "team_lookup_failed", "team": number, "error": str(exc)},
            )
            return None

        with self._lock:
            self._team_cache[number] = info
        self._persist_teams()
        return info

    def _fetch_stats(self, number: str, season: int | None, key: str) -> QuickStats | None:
        try:
            stats = self.client.fetch_quick_stats(number, season=season)
        except TeamNotFoundError:
            logger.info(
                "Quick stats not found",
                extra={"event": "stats_not_found", "team": number, "season": season},
            )
            return None
        except DirectoryError as exc:
            logger.warning(
                "Quick stats lookup failed",
                extra={"event": "stats_lookup_failed", "team": number, "season": season, "error": str(exc)},
            )
            return None

        with self._lock:
            self._stats_cache[key] = stats
        self._persist_stats()
        return stats

    # -- persistence ------------------------------------------------------

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        with self._load_lock:
            if self._loaded:
                return
            teams = self._load_teams()
            stats = self._load_stats()
            with self._lock:
                # entries fetched before the load completed take precedence
                for number, entry in teams.items():
                    self._team_cache.setdefault(number, entry)
                for key, value in stats.items():
                    self._stats_cache.setdefault(key, value)
                self._loaded = True
            logger.info(
                "Team cache loaded",
                extra={"event": "cache_loaded", "teams": len(teams), "stats": len(stats)},
            )

    def _read_blob(self, key: str) -> dict[str, Any]:
        try:
            raw = self.store.read(key)
        except CacheStoreError as exc:
            logger.warning("Cache read failed", extra={"event": "cache_read_failed", "key": key, "error": str(exc)})
            return {}
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding corrupt cache blob", extra={"event": "cache_corrupt", "key": key})
            return {}
        if not isinstance(data, dict):
            logger.warning("Discarding corrupt cache blob", extra={"event": "cache_corrupt", "key": key})
            return {}
        return data

    def _load_teams(self) -> dict[str, TeamInfo | _NotFound]:
        teams: dict[str, TeamInfo | _NotFound] = {}
        for number, value in self._read_blob(TEAM_CACHE_KEY).items():
            if value is None:
                teams[str(number)] = NOT_FOUND
                continue
            try:
                teams[str(number)] = TeamPayload.model_validate(value).to_team_info()
            except ValidationError:
                logger.debug("Skipping malformed cached team", extra={"event": "cache_entry_invalid", "team": number})
        return teams

    def _load_stats(self) -> dict[str, QuickStats]:
        stats: dict[str, QuickStats] = {}
        for key, value in self._read_blob(STATS_CACHE_KEY).items():
            try:
                stats[str(key)] = QuickStatsPayload.model_validate(value).to_quick_stats()
            except ValidationError:
                logger.debug("Skipping malformed cached stats", extra={"event": "cache_entry_invalid", "key": key})
        return stats

    def _persist_teams(self) -> None:
        with self._lock:
            snapshot = {
                number: None if entry is NOT_FOUND else entry.to_dict()  # type: ignore[union-attr]
                for number, entry in self._team_cache.items()
            }
            blob = json.dumps(snapshot, separators=(",", ":"), sort_keys=True)
            self._submit_write_locked(lambda: self.store.write(TEAM_CACHE_KEY, blob))

    def _persist_stats(self) -> None:
        with self._lock:
            snapshot = {key: stats.to_dict() for key, stats in self._stats_cache.items()}
            blob = json.dumps(snapshot, separators=(",", ":"), sort_keys=True)
            self._submit_write_locked(lambda: self.store.write(STATS_CACHE_KEY, blob))

    def _delete_blobs(self) -> None:
        self.store.delete(TEAM_CACHE_KEY)
        self.store.delete(STATS_CACHE_KEY)

    def _submit_write(self, action: Callable[[], None]) -> None:
        with self._lock:
            self._submit_write_locked(action)

    def _submit_write_locked(self, action: Callable[[], None]) -> None:
        # Submitting under the lock keeps writer order equal to snapshot order.
        future = self._writer.submit(self._guarded_write, action)
        self._pending_writes.add(future)
        future.add_done_callback(self._write_done)

    def _write_done(self, future: Future[None]) -> None:
        with self._lock:
            self._pending_writes.discard(future)

    @staticmethod
    def _guarded_write(action: Callable[[], None]) -> None:
        try:
            action()
        except CacheStoreError as exc:
            logger.warning("Cache write failed", extra={"event": "cache_write_failed", "error": str(exc)})

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from team_scanner.exceptions import CacheStoreError

TEAM_CACHE_KEY = "team_cache"
STATS_CACHE_KEY = "stats_cache"


class CacheStore(Protocol):
    def read(self, key: str) -> str | None:
        ...

    def write(self, key: str, blob: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryCacheStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._blobs: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def read(self, key: str) -> str | None:
        with self._lock:
            return self._blobs.get(key)

    def write(self, key: str, blob: str) -> None:
        with self._lock:
            self._blobs[key] = blob

    def delete(self, key: str) -> None:
        with self._lock:
            self._blobs.pop(key, None)


class SQLiteCacheStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=5)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    create table if not exists cache_blobs (
                        key text primary key,
                        blob text not null,
                        updated_at text not null
                    )
                    """
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise CacheStoreError(f"Failed to initialize cache store {self.db_path}: {exc}") from exc

    def read(self, key: str) -> str | None:
        try:
            with self._lock, self._connect() as conn:
                row = conn.execute("select blob from cache_blobs where key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise CacheStoreError(f"Failed to read cache blob {key!r}: {exc}") from exc
        return str(row["blob"]) if row else None

    def write(self, key: str, blob: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._lock, self._connect() as conn:
                conn.execute(
                    """
                    insert into cache_blobs (key, blob, updated_at) values (?, ?, ?)
                    on conflict(key) do update set
                        blob = excluded.blob,
                        updated_at = excluded.updated_at
                    """,
                    (key, blob, now),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise CacheStoreError(f"Failed to write cache blob {key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            with self._lock, self._connect() as conn:
                conn.execute("delete from cache_blobs where key = ?", (key,))
                conn.commit()
        except sqlite3.Error as exc:
            raise CacheStoreError(f"Failed to delete cache blob {key!r}: {exc}") from exc


class JsonFileCacheStore:
    """One ``<key>.json`` file per blob, replaced atomically on write."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            try:
                return path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise CacheStoreError(f"Failed to read {path}: {exc}") from exc

    def write(self, key: str, blob: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with self._lock:
            try:
                tmp_path.write_text(blob, encoding="utf-8")
                tmp_path.replace(path)
            except OSError as exc:
                raise CacheStoreError(f"Failed to write {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise CacheStoreError(f"Failed to delete {path}: {exc}") from exc


def open_cache_store(backend: str, path: Path) -> CacheStore:
    if backend == "memory":
        return MemoryCacheStore()
    if backend == "json":
        return JsonFileCacheStore(path)
    if backend == "sqlite":
        return SQLiteCacheStore(path)
    raise ValueError(f"Unknown cache backend: {backend}")

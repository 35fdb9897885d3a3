from __future__ import annotations

import threading
from typing import Any

import pytest
import requests

from team_scanner.database import MemoryCacheStore
from team_scanner.directory import DirectoryClient, TeamLookupService

BASE_URL = "https://directory.test/rest/v1"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    """Stands in for requests.Session, answering GETs from a route table."""

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.calls: list[tuple[str, dict[str, Any] | None]] = []
        self.gate: threading.Event | None = None
        self._lock = threading.Lock()

    def add(self, path: str, status_code: int = 200, payload: Any = None) -> None:
        self.routes[f"{BASE_URL}{path}"] = FakeResponse(status_code, payload)

    def fail(self, path: str, exc: Exception) -> None:
        self.routes[f"{BASE_URL}{path}"] = exc

    def calls_to(self, path: str) -> int:
        return sum(1 for url, _ in self.calls if url == f"{BASE_URL}{path}")

    def get(self, url: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> FakeResponse:
        with self._lock:
            self.calls.append((url, params))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, {"error": "not found"})
        if isinstance(route, Exception):
            raise route
        return route

    def close(self) -> None:
        pass


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> DirectoryClient:
    return DirectoryClient(base_url=BASE_URL, timeout_seconds=1.0, session=session)  # type: ignore[arg-type]


@pytest.fixture
def store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def service(client: DirectoryClient, store: MemoryCacheStore):
    svc = TeamLookupService(client=client, store=store)
    yield svc
    svc.close()

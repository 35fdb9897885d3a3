import json
import threading
import time

import pytest
import requests

from team_scanner.database import (
    STATS_CACHE_KEY,
    TEAM_CACHE_KEY,
    JsonFileCacheStore,
    MemoryCacheStore,
    SQLiteCacheStore,
)
from team_scanner.directory import DirectoryClient, TeamLookupService, stats_cache_key
from team_scanner.exceptions import DirectoryError, TeamNotFoundError
from team_scanner.utils.types import TeamInfo

WPI = {"number": 254, "name": "WPI Robotics", "city": "Worcester", "state": "MA", "country": "USA", "rookieYear": 2008}
STATS = {
    "tot": {"value": 120.456, "rank": 3},
    "auto": {"value": 30.0, "rank": 11},
    "dc": {"value": 60.5, "rank": 0},
    "eg": {"value": 29.9, "rank": None},
}


def test_found_team_is_cached(service, session):
    session.add("/teams/254", payload=WPI)

    first = service.get_team_info("254")
    second = service.get_team_info(" 254 ")

    assert first == TeamInfo(number="254", name="WPI Robotics", city="Worcester", state="MA", country="USA")
    assert second == first
    assert session.calls_to("/teams/254") == 1


def test_missing_team_is_negatively_cached(service, session, store):
    assert service.get_team_info("9999999") is None
    assert service.get_team_info("9999999") is None
    assert session.calls_to("/teams/9999999") == 1

    service.flush()
    assert json.loads(store.read(TEAM_CACHE_KEY)) == {"9999999": None}


def test_transient_failures_are_not_cached(service, session):
    session.add("/teams/500", status_code=503, payload={"error": "busy"})
    assert service.get_team_info("500") is None

    session.fail("/teams/501", requests.ConnectionError("offline"))
    assert service.get_team_info("501") is None

    session.add("/teams/500", payload={"number": "500", "name": "Recovered"})
    assert service.get_team_info("500").name == "Recovered"
    assert session.calls_to("/teams/500") == 2
    assert service.cached_team_count == 1


def test_malformed_payload_is_treated_as_transient(service, session):
    session.add("/teams/42", payload={"unexpected": True})
    assert service.get_team_info("42") is None
    session.add("/teams/42", payload={"number": 42, "name": "Answer"})
    assert service.get_team_info("42").name == "Answer"


def test_blank_number_short_circuits(service, session):
    assert service.get_team_info("   ") is None
    assert service.get_quick_stats("") is None
    assert session.calls == []


def test_quick_stats_are_keyed_by_season(service, session):
    session.add("/teams/254/quick-stats", payload=STATS)

    current = service.get_quick_stats("254")
    again = service.get_quick_stats("254")
    season = service.get_quick_stats("254", season=2023)

    assert current is again
    assert current.total.value == 120.456
    assert current.driver_controlled.rank == 0
    assert current.endgame.is_ranked is False
    assert season == current
    assert session.calls_to("/teams/254/quick-stats") == 2
    assert [params for url, params in session.calls] == [None, {"season": 2023}]

    service.flush()
    cached = json.loads(service.store.read(STATS_CACHE_KEY))
    assert set(cached) == {stats_cache_key("254"), stats_cache_key("254", 2023)}
    assert stats_cache_key("254") == "254-current"


def test_missing_quick_stats_are_retried(service, session):
    assert service.get_quick_stats("7") is None
    assert service.get_quick_stats("7") is None
    assert session.calls_to("/teams/7/quick-stats") == 2


def test_cache_survives_restart(client, session):
    store = MemoryCacheStore()
    session.add("/teams/254", payload=WPI)
    session.add("/teams/254/quick-stats", payload=STATS)

    first = TeamLookupService(client=client, store=store)
    first.get_team_info("254")
    first.get_team_info("404404")
    first.get_quick_stats("254")
    first.close()

    session.calls.clear()
    second = TeamLookupService(client=client, store=store)
    try:
        assert second.get_team_info("254").name == "WPI Robotics"
        assert second.get_team_info("404404") is None
        assert second.get_quick_stats("254").auto.rank == 11
        assert session.calls == []
    finally:
        second.close()


def test_sqlite_store_round_trip(tmp_path, client, session):
    db_path = tmp_path / "cache.db"
    session.add("/teams/254", payload=WPI)

    first = TeamLookupService(client=client, store=SQLiteCacheStore(db_path))
    first.get_team_info("254")
    first.close()

    session.calls.clear()
    second = TeamLookupService(client=client, store=SQLiteCacheStore(db_path))
    try:
        assert second.get_team_info("254").city == "Worcester"
        assert session.calls == []
    finally:
        second.close()


def test_corrupt_blob_is_treated_as_empty(client, session):
    store = MemoryCacheStore({TEAM_CACHE_KEY: "{not json", STATS_CACHE_KEY: "[1, 2]"})
    session.add("/teams/254", payload=WPI)
    service = TeamLookupService(client=client, store=store)
    try:
        assert service.get_team_info("254").name == "WPI Robotics"
        assert session.calls_to("/teams/254") == 1
    finally:
        service.close()


def test_clear_cache_forgets_everything(service, session, store):
    session.add("/teams/254", payload=WPI)
    service.get_team_info("254")
    service.get_team_info("9999999")
    service.flush()

    service.clear_cache()

    assert service.cached_team_count == 0
    assert store.read(TEAM_CACHE_KEY) is None
    assert store.read(STATS_CACHE_KEY) is None
    service.get_team_info("254")
    service.get_team_info("9999999")
    assert session.calls_to("/teams/254") == 2
    assert session.calls_to("/teams/9999999") == 2


def test_concurrent_requests_share_one_fetch(service, session):
    session.add("/teams/254", payload=WPI)
    session.gate = threading.Event()
    results: list = []

    def worker() -> None:
        results.append(service.get_team_info("254"))

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for thread in threads:
        thread.start()

    deadline = time.time() + 2.0
    while not session.calls and time.time() < deadline:
        time.sleep(0.01)
    time.sleep(0.05)
    session.gate.set()
    for thread in threads:
        thread.join(timeout=2.0)

    assert len(results) == 5
    assert all(result is not None and result.name == "WPI Robotics" for result in results)
    assert session.calls_to("/teams/254") == 1


@pytest.mark.parametrize(
    ("number", "route", "expected"),
    [
        ("1", {"status_code": 500}, DirectoryError),
        ("2", {"payload": ValueError("bad json")}, DirectoryError),
        ("3", None, TeamNotFoundError),
    ],
)
def test_client_maps_failures(session, number, route, expected):
    client = DirectoryClient(base_url="https://directory.test/rest/v1/", session=session)
    if route is not None:
        session.add(f"/teams/{number}", **route)

    with pytest.raises(expected):
        client.fetch_team(number)


def test_undecodable_cache_file_loads_as_empty(tmp_path, client, session):
    (tmp_path / "team_cache.json").write_bytes(b"\xff\xfe\x00garbage")
    session.add("/teams/254", payload=WPI)
    service = TeamLookupService(client=client, store=JsonFileCacheStore(tmp_path))
    try:
        assert service.get_team_info("254").name == "WPI Robotics"
        assert service.get_team_info("254").name == "WPI Robotics"
        assert session.calls_to("/teams/254") == 1
        service.flush()
        assert json.loads((tmp_path / "team_cache.json").read_text(encoding="utf-8"))["254"]["name"] == "WPI Robotics"
    finally:
        service.close()


class CountingStore(MemoryCacheStore):
    def __init__(self, gate: threading.Event) -> None:
        super().__init__()
        self.gate = gate
        self.reads: list[str] = []
        self._reads_lock = threading.Lock()

    def read(self, key: str) -> str | None:
        with self._reads_lock:
            self.reads.append(key)
        self.gate.wait(timeout=5)
        return super().read(key)


def test_store_is_loaded_once_under_concurrent_first_use(client, session):
    session.add("/teams/254", payload=WPI)
    session.add("/teams/254/quick-stats", payload=STATS)
    gate = threading.Event()
    store = CountingStore(gate)
    service = TeamLookupService(client=client, store=store)

    def team_worker() -> None:
        service.get_team_info("254")

    def stats_worker() -> None:
        service.get_quick_stats("254")

    threads = [threading.Thread(target=team_worker) for _ in range(4)]
    threads += [threading.Thread(target=stats_worker) for _ in range(4)]
    try:
        for thread in threads:
            thread.start()
        deadline = time.time() + 2.0
        while not store.reads and time.time() < deadline:
            time.sleep(0.01)
        time.sleep(0.05)
        gate.set()
        for thread in threads:
            thread.join(timeout=2.0)

        assert sorted(store.reads) == sorted([TEAM_CACHE_KEY, STATS_CACHE_KEY])
        assert session.calls_to("/teams/254") == 1
        assert session.calls_to("/teams/254/quick-stats") == 1
    finally:
        gate.set()
        service.close()

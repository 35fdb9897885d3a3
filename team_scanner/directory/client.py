from __future__ import annotations

from typing import Any

import requests
from pydantic import ValidationError

from team_scanner.config.settings import DEFAULT_API_BASE_URL
from team_scanner.directory.schemas import QuickStatsPayload, TeamPayload
from team_scanner.exceptions import DirectoryError, TeamNotFoundError
from team_scanner.utils.types import QuickStats, TeamInfo


class DirectoryClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout_seconds: float = 8.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def _get_json(self, number: str, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise DirectoryError(f"Request to {url} failed: {exc}") from exc

        if resp.status_code == 404:
            raise TeamNotFoundError(number)
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise DirectoryError(f"HTTP error {resp.status_code} from {url}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise DirectoryError(f"Invalid JSON from {url}") from exc

    def fetch_team(self, number: str) -> TeamInfo:
        body = self._get_json(number, f"/teams/{number}")
        try:
            return TeamPayload.model_validate(body).to_team_info()
        except ValidationError as exc:
            raise DirectoryError(f"Malformed team payload for {number}: {exc}") from exc

    def fetch_quick_stats(self, number: str, season: int | None = None) -> QuickStats:
        params = {"season": season} if season else None
        body = self._get_json(number, f"/teams/{number}/quick-stats", params=params)
        try:
            return QuickStatsPayload.model_validate(body).to_quick_stats()
        except ValidationError as exc:
            raise DirectoryError(f"Malformed quick stats payload for {number}: {exc}") from exc

    def close(self) -> None:
        self.session.close()

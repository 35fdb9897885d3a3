from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from team_scanner.utils.types import QuickStats, StatLine, TeamInfo


class TeamPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    number: str
    name: str
    city: str | None = None
    state: str | None = None
    country: str | None = None

    @field_validator("number", mode="before")
    @classmethod
    def _number_as_text(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def to_team_info(self) -> TeamInfo:
        return TeamInfo(
            number=self.number,
            name=self.name,
            city=self.city or None,
            state=self.state or None,
            country=self.country or None,
        )


class StatLinePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: float | None = None
    rank: int | None = None

    def to_stat_line(self) -> StatLine:
        rank = self.rank if self.rank is not None and self.rank > 0 else 0
        return StatLine(value=float(self.value or 0.0), rank=rank)


class QuickStatsPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tot: StatLinePayload | None = None
    auto: StatLinePayload | None = None
    dc: StatLinePayload | None = None
    eg: StatLinePayload | None = None

    def to_quick_stats(self) -> QuickStats:
        def line(payload: StatLinePayload | None) -> StatLine:
            return payload.to_stat_line() if payload is not None else StatLine()

        return QuickStats(
            total=line(self.tot),
            auto=line(self.auto),
            driver_controlled=line(self.dc),
            endgame=line(self.eg),
        )

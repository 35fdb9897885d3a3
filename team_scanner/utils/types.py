from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class Point:
    x: float
    y: float


Quad = tuple[Point, Point, Point, Point]


@dataclass(frozen=True)
class FrameSize:
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def rotated(self) -> "FrameSize":
        return FrameSize(width=self.height, height=self.width)


@dataclass(frozen=True)
class TeamInfo:
    number: str
    name: str
    city: str | None = None
    state: str | None = None
    country: str | None = None

    @property
    def location(self) -> str:
        return ", ".join(part for part in (self.city, self.state, self.country) if part)

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "name": self.name,
            "city": self.city,
            "state": self.state,
            "country": self.country,
        }


@dataclass(frozen=True)
class StatLine:
    value: float = 0.0
    rank: int = 0

    @property
    def is_ranked(self) -> bool:
        return self.rank > 0


@dataclass(frozen=True)
class QuickStats:
    total: StatLine
    auto: StatLine
    driver_controlled: StatLine
    endgame: StatLine

    def to_dict(self) -> dict[str, dict[str, float | int]]:
        return {
            key: {"value": line.value, "rank": line.rank}
            for key, line in (
                ("tot", self.total),
                ("auto", self.auto),
                ("dc", self.driver_controlled),
                ("eg", self.endgame),
            )
        }


@dataclass(frozen=True)
class DetectedNumber:
    text: str
    corner_points: Quad
    team_info: TeamInfo | None = None

    def with_team_info(self, team_info: TeamInfo | None) -> "DetectedNumber":
        return replace(self, team_info=team_info)


@dataclass(frozen=True)
class DetectionBatch:
    sequence: int
    frame_size: FrameSize
    detections: tuple[DetectedNumber, ...] = ()


@dataclass(frozen=True)
class PublishedBatch:
    sequence: int
    frame_size: FrameSize
    detections: tuple[DetectedNumber, ...] = ()


EMPTY_PUBLISHED = PublishedBatch(sequence=-1, frame_size=FrameSize(0, 0))


# Recognizer output tree: blocks -> lines -> elements (words) -> symbols.


@dataclass
class RecognizedSymbol:
    text: str = ""
    corner_points: list[Point] = field(default_factory=list)


@dataclass
class RecognizedElement:
    text: str
    corner_points: list[Point] = field(default_factory=list)
    symbols: list[RecognizedSymbol] = field(default_factory=list)


@dataclass
class RecognizedLine:
    elements: list[RecognizedElement] = field(default_factory=list)


@dataclass
class RecognizedBlock:
    lines: list[RecognizedLine] = field(default_factory=list)


@dataclass
class RecognitionResult:
    blocks: list[RecognizedBlock] = field(default_factory=list)
    width: int = 0
    height: int = 0

    @property
    def frame_size(self) -> FrameSize:
        return FrameSize(width=self.width, height=self.height)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], width: int = 0, height: int = 0) -> "RecognitionResult":
        blocks: list[RecognizedBlock] = []
        for block_raw in _as_list(payload.get("blocks")):
            lines: list[RecognizedLine] = []
            for line_raw in _as_list(_get(block_raw, "lines")):
                elements: list[RecognizedElement] = []
                for element_raw in _as_list(_get(line_raw, "elements")):
                    element = _parse_element(element_raw)
                    if element is not None:
                        elements.append(element)
                lines.append(RecognizedLine(elements=elements))
            blocks.append(RecognizedBlock(lines=lines))
        return cls(
            blocks=blocks,
            width=int(payload.get("width", width) or 0),
            height=int(payload.get("height", height) or 0),
        )


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return None


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def parse_point(raw: Any) -> Point | None:
    try:
        if isinstance(raw, Mapping):
            return Point(x=float(raw["x"]), y=float(raw["y"]))
        if isinstance(raw, Sequence) and not isinstance(raw, str) and len(raw) >= 2:
            return Point(x=float(raw[0]), y=float(raw[1]))
    except (KeyError, TypeError, ValueError):
        return None
    return None


def parse_points(raw: Any) -> list[Point]:
    points: list[Point] = []
    for item in _as_list(raw):
        point = parse_point(item)
        if point is not None:
            points.append(point)
    return points


def _parse_element(raw: Any) -> RecognizedElement | None:
    if not isinstance(raw, Mapping):
        return None
    text = raw.get("text")
    if not isinstance(text, str):
        return None
    symbols = [
        RecognizedSymbol(
            text=str(_get(symbol_raw, "text") or ""),
            corner_points=parse_points(_get(symbol_raw, "cornerPoints")),
        )
        for symbol_raw in _as_list(raw.get("symbols"))
    ]
    return RecognizedElement(
        text=text,
        corner_points=parse_points(raw.get("cornerPoints")),
        symbols=symbols,
    )

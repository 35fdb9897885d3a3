from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Sequence

from team_scanner.geometry.transform import to_preview_quad
from team_scanner.utils.types import DetectedNumber, FrameSize, Point, PublishedBatch


@dataclass(frozen=True)
class OverlayBox:
    left: float
    top: float
    width: float
    height: float
    angle: float
    corners: tuple[Point, Point, Point, Point]

    @property
    def angle_degrees(self) -> float:
        return math.degrees(self.angle)

    @property
    def center(self) -> Point:
        xs = [p.x for p in self.corners]
        ys = [p.y for p in self.corners]
        return Point(x=sum(xs) / 4.0, y=sum(ys) / 4.0)

    @classmethod
    def from_quad(cls, quad: Sequence[Point]) -> "OverlayBox":
        top_left, top_right, bottom_right, bottom_left = quad[:4]
        return cls(
            left=top_left.x,
            top=top_left.y,
            width=math.hypot(top_right.x - top_left.x, top_right.y - top_left.y),
            height=math.hypot(bottom_left.x - top_left.x, bottom_left.y - top_left.y),
            angle=math.atan2(top_right.y - top_left.y, top_right.x - top_left.x),
            corners=(top_left, top_right, bottom_right, bottom_left),
        )


def overlay_for(detection: DetectedNumber, frame_size: FrameSize, preview_size: FrameSize) -> OverlayBox | None:
    quad = to_preview_quad(detection.corner_points, frame_size, preview_size)
    if quad is None:
        return None
    return OverlayBox.from_quad(quad)


def layout_overlays(
    published: PublishedBatch,
    preview_size: FrameSize,
) -> Iterator[tuple[DetectedNumber, OverlayBox]]:
    # Always pair a batch's points with that same batch's frame size.
    for detection in published.detections:
        box = overlay_for(detection, published.frame_size, preview_size)
        if box is not None:
            yield detection, box


def calculate_font_size(
    display_text: str,
    width: float,
    height: float,
    max_font_size: float,
    min_font_size: float,
) -> float:
    lines = display_text.split("\n")
    longest = max(len(line) for line in lines) or 1
    by_width = width / (longest * 0.7)
    by_height = height / 2.2
    return max(min_font_size, min(max_font_size, math.floor(min(by_width, by_height))))

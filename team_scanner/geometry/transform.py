from __future__ import annotations

from typing import Sequence

from team_scanner.utils.types import FrameSize, Point


def rotate_to_portrait(point: Point, frame_size: FrameSize) -> Point:
    # frame_size is the landscape sensor size
    return Point(x=frame_size.height - point.y, y=point.x)


def rotate_to_landscape(point: Point, frame_size: FrameSize) -> Point:
    return Point(x=point.y, y=frame_size.height - point.x)


def can_transform(frame_size: FrameSize, preview_size: FrameSize) -> bool:
    return not frame_size.is_empty and not preview_size.is_empty


def _fill_params(frame_size: FrameSize, preview_size: FrameSize) -> tuple[float, float, float]:
    frame_aspect = frame_size.width / frame_size.height
    preview_aspect = preview_size.width / preview_size.height

    if preview_aspect > frame_aspect:
        # preview crops the frame's top and bottom
        scale = preview_size.width / frame_size.width
        offset_y = (frame_size.height * scale - preview_size.height) / 2.0
        return scale, 0.0, offset_y

    scale = preview_size.height / frame_size.height
    offset_x = (frame_size.width * scale - preview_size.width) / 2.0
    return scale, offset_x, 0.0


def transform_coordinates(point: Point, frame_size: FrameSize, preview_size: FrameSize) -> Point:
    """Aspect-fill scale and center-crop ``point`` into preview space.

    Returns ``point`` unchanged when either size is empty.
    """
    if not can_transform(frame_size, preview_size):
        return point
    scale, offset_x, offset_y = _fill_params(frame_size, preview_size)
    return Point(x=point.x * scale - offset_x, y=point.y * scale - offset_y)


def inverse_transform_coordinates(point: Point, frame_size: FrameSize, preview_size: FrameSize) -> Point:
    if not can_transform(frame_size, preview_size):
        return point
    scale, offset_x, offset_y = _fill_params(frame_size, preview_size)
    return Point(x=(point.x + offset_x) / scale, y=(point.y + offset_y) / scale)


def frame_to_preview(point: Point, frame_size: FrameSize, preview_size: FrameSize) -> Point:
    if not can_transform(frame_size, preview_size):
        return point
    rotated = rotate_to_portrait(point, frame_size)
    return transform_coordinates(rotated, frame_size.rotated(), preview_size)


def preview_to_frame(point: Point, frame_size: FrameSize, preview_size: FrameSize) -> Point:
    if not can_transform(frame_size, preview_size):
        return point
    rotated = inverse_transform_coordinates(point, frame_size.rotated(), preview_size)
    return rotate_to_landscape(rotated, frame_size)


def to_preview_quad(
    corners: Sequence[Point],
    frame_size: FrameSize,
    preview_size: FrameSize,
) -> list[Point] | None:
    """Map all four corners to preview space, or ``None`` when layout is not possible yet."""
    if len(corners) != 4 or not can_transform(frame_size, preview_size):
        return None
    return [frame_to_preview(point, frame_size, preview_size) for point in corners]

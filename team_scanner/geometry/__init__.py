from .overlay import OverlayBox, calculate_font_size, layout_overlays, overlay_for
from .transform import (
    can_transform,
    frame_to_preview,
    inverse_transform_coordinates,
    preview_to_frame,
    rotate_to_landscape,
    rotate_to_portrait,
    to_preview_quad,
    transform_coordinates,
)

__all__ = [
    "OverlayBox",
    "calculate_font_size",
    "can_transform",
    "frame_to_preview",
    "inverse_transform_coordinates",
    "layout_overlays",
    "overlay_for",
    "preview_to_frame",
    "rotate_to_landscape",
    "rotate_to_portrait",
    "to_preview_quad",
    "transform_coordinates",
]

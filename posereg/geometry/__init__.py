"""
Geometry module - points, rectangles and coordinate-space conversions

Provides:
- One point type per coordinate space (normalized, crop, full)
- Rect with frame clamping
- Conversion functions between spaces
"""

from .coords import (
    NormalizedPoint,
    CropPoint,
    PixelPoint,
    Rect,
    clamp,
    round_half_up,
    normalized_to_crop,
    crop_to_full,
    full_to_crop,
    normalized_crop_to_full,
    full_to_normalized,
    normalized_to_full,
    normalized_array_to_full,
    full_array_to_normalized,
    crop_array_to_full,
    points_to_array,
)

__all__ = [
    "NormalizedPoint",
    "CropPoint",
    "PixelPoint",
    "Rect",
    "clamp",
    "round_half_up",
    "normalized_to_crop",
    "crop_to_full",
    "full_to_crop",
    "normalized_crop_to_full",
    "full_to_normalized",
    "normalized_to_full",
    "normalized_array_to_full",
    "full_array_to_normalized",
    "crop_array_to_full",
    "points_to_array",
]

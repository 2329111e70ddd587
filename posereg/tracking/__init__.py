"""
Tracking module - Crop window tracking and landmark interpolation

Provides:
- Hip-anchored crop tracker
- Offline interpolation of pose sessions
"""

from .crop_tracker import CropTracker, hip_anchor
from .interpolation import (
    interpolate_landmarks,
    interpolate_session,
    validate_interpolation,
    get_interpolation_stats,
)

__all__ = [
    # Crop tracking
    "CropTracker",
    "hip_anchor",
    # Interpolation
    "interpolate_landmarks",
    "interpolate_session",
    "validate_interpolation",
    "get_interpolation_stats",
]

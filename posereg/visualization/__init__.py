"""
Visualization module - Rendering poses, crop windows and feature matches

Provides:
- Skeleton visualization with left/right coloring
- Crop window and keypoint drawing
- Side-by-side match rendering
"""

from .drawer import (
    landmark_color,
    draw_pose,
    draw_crop_rect,
    draw_keypoints,
    draw_matches,
    add_text_label,
)

__all__ = [
    # Color
    "landmark_color",
    # Drawing
    "draw_pose",
    "draw_crop_rect",
    "draw_keypoints",
    "draw_matches",
    "add_text_label",
]

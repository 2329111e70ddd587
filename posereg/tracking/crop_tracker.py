"""
Hip-anchored crop tracking across sequential frames

Keeps a fixed-size detection window on a moving subject without running an
object detector on every frame: after each frame the window is recentered on
the midpoint of the two hip landmarks.

Provides:
- CropTracker: window state with recenter()
- hip_anchor: anchor point from detector landmarks
"""

import logging
import math
from typing import List, Optional, Sequence

from ..core.config import TrackingConfig
from ..geometry import NormalizedPoint, Rect, normalized_crop_to_full, round_half_up
from ..pose.landmarks import DetectedLandmark

logger = logging.getLogger(__name__)


def hip_anchor(
    landmarks: Optional[Sequence[DetectedLandmark]],
    config: Optional[TrackingConfig] = None,
) -> Optional[NormalizedPoint]:
    """
    Midpoint of the left and right hip landmarks

    Args:
        landmarks: Detector output normalized to the crop, or None
        config: Anchor indices and minimum visibility

    Returns:
        Crop-normalized midpoint, or None when either hip is missing or
        below the visibility threshold

    Example:
        >>> lms = [DetectedLandmark(0, 0)] * 23 + [DetectedLandmark(0.4, 0.6), DetectedLandmark(0.6, 0.6)]
        >>> hip_anchor(lms)
        NormalizedPoint(x=0.5, y=0.6)
    """
    if config is None:
        config = TrackingConfig()
    if not landmarks:
        return None

    needed = max(config.left_anchor_index, config.right_anchor_index)
    if len(landmarks) <= needed:
        return None

    left = landmarks[config.left_anchor_index]
    right = landmarks[config.right_anchor_index]
    if left is None or right is None:
        return None
    if min(left.visibility, right.visibility) < config.min_anchor_visibility:
        return None

    return NormalizedPoint((left.x + right.x) / 2.0, (left.y + right.y) / 2.0)


class CropTracker:
    """
    Fixed-size crop window that follows an anchor point

    The window size is set once at construction (and may only shrink in
    fit_to_frame, when the frame is smaller than the window). Afterwards
    only the position moves.

    A missing anchor keeps the window where it is, so one bad frame does
    not lose tracking. There is no bound on how long a stale window is
    held: if the subject reappears elsewhere after several misses the
    tracker may never recover.

    Example:
        >>> tracker = CropTracker(Rect(100, 100, 200, 200))
        >>> tracker.recenter(NormalizedPoint(0.5, 0.5), 1920, 1080)
        Rect(x=100, y=100, width=200, height=200)
    """

    def __init__(self, initial_crop: Rect, config: Optional[TrackingConfig] = None):
        """
        Initialize tracker

        Args:
            initial_crop: User-supplied window in full-image pixels
            config: TrackingConfig (anchor indices, rounding)
        """
        self.config = config or TrackingConfig()
        self.initial_crop = initial_crop
        self.current_crop = initial_crop
        self.updates = 0
        self.misses = 0
        self.history: List[Rect] = [initial_crop]

    def fit_to_frame(self, frame_width: int, frame_height: int) -> Rect:
        """
        Clamp the current window into the frame and snap it to whole pixels

        Called once the first frame size is known.
        """
        fitted = self.current_crop.clamp_to(frame_width, frame_height).to_pixel_grid()
        if fitted != self.current_crop:
            logger.debug("Initial crop %s clamped to %s", self.current_crop, fitted)
            self.current_crop = fitted
            self.history[-1] = fitted
        return self.current_crop

    def recenter(
        self,
        anchor: Optional[NormalizedPoint],
        frame_width: int,
        frame_height: int,
    ) -> Rect:
        """
        Move the window so the anchor sits at its center

        Args:
            anchor: Anchor normalized to the pixel-grid window the detector
                    ran on (current_crop.to_pixel_grid()), or None if it
                    was not detected this frame. Non-finite anchors count
                    as missing.
            frame_width: Full frame width in pixels
            frame_height: Full frame height in pixels

        Returns:
            Window for the next frame, with 0 <= x, x + width <= frame_width
            and the same for y/height
        """
        crop = self.current_crop

        if anchor is None or not (math.isfinite(anchor.x) and math.isfinite(anchor.y)):
            self.misses += 1
            self.history.append(crop)
            return crop

        full = normalized_crop_to_full(anchor, crop.to_pixel_grid())
        x = full.x - crop.width / 2.0
        y = full.y - crop.height / 2.0

        if self.config.round_to_pixel:
            x = round_half_up(x)
            y = round_half_up(y)

        self.current_crop = Rect(x, y, crop.width, crop.height).clamp_to(frame_width, frame_height)
        self.updates += 1
        self.history.append(self.current_crop)
        return self.current_crop

    def reset(self) -> None:
        """Return to the initial window (for a new sequence)"""
        self.current_crop = self.initial_crop
        self.updates = 0
        self.misses = 0
        self.history = [self.initial_crop]

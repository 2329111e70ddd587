"""
Drawing utilities for pose, crop window and feature-match visualization

Provides:
- Draw pose skeleton with left/right coloring
- Draw the crop window used for a frame
- Draw ORB keypoints
- Draw matches side by side (inliers / outliers)
- Text labels
"""

import math
import numpy as np
from typing import List, Optional, Sequence, Tuple

from ..core.constants import (
    CENTER_POINT_COLOR,
    CONNECTION_COLOR,
    CROP_BOX_COLOR,
    INLIER_COLOR,
    KEYPOINT_COLOR,
    LEFT_LANDMARK_INDICES,
    LEFT_POINT_COLOR,
    OUTLIER_COLOR,
    POSE_CONNECTIONS,
    RIGHT_LANDMARK_INDICES,
    RIGHT_POINT_COLOR,
)
from ..features.types import KeypointSet, Match
from ..geometry import Rect
from ..pose.landmarks import PoseLandmark

_LEFT = set(LEFT_LANDMARK_INDICES)
_RIGHT = set(RIGHT_LANDMARK_INDICES)


def landmark_color(index: int) -> Tuple[int, int, int]:
    """
    (B, G, R) color of a landmark by side of the body

    Example:
        >>> landmark_color(0)  # nose
        (255, 255, 255)
    """
    if index in _LEFT:
        return LEFT_POINT_COLOR
    if index in _RIGHT:
        return RIGHT_POINT_COLOR
    return CENTER_POINT_COLOR


def _finite_point(lm: PoseLandmark) -> Optional[Tuple[int, int]]:
    if not (math.isfinite(lm.x) and math.isfinite(lm.y)):
        return None
    return int(round(lm.x)), int(round(lm.y))


def draw_pose(
    image: np.ndarray,
    landmarks: Sequence[PoseLandmark],
    visibility_threshold: float = 0.0,
    line_thickness: int = 2,
    point_radius: int = 4
) -> np.ndarray:
    """
    Draw pose skeleton on image

    Landmarks with NaN coordinates or visibility below the threshold are
    skipped together with their connections.

    Args:
        image: Input image (H, W, 3) BGR
        landmarks: Full-image pixel landmarks in detector order
        visibility_threshold: Minimum visibility for drawing
        line_thickness: Skeleton line thickness
        point_radius: Landmark circle radius

    Returns:
        Modified image with skeleton drawn

    Example:
        >>> image = draw_pose(image, session[0].landmarks)
    """
    import cv2

    points: List[Optional[Tuple[int, int]]] = []
    for lm in landmarks:
        pt = _finite_point(lm)
        if pt is not None and lm.visibility < visibility_threshold:
            pt = None
        points.append(pt)

    for idx1, idx2 in POSE_CONNECTIONS:
        if idx1 < len(points) and idx2 < len(points):
            if points[idx1] is not None and points[idx2] is not None:
                cv2.line(image, points[idx1], points[idx2], CONNECTION_COLOR, line_thickness)

    for idx, pt in enumerate(points):
        if pt is not None:
            cv2.circle(image, pt, point_radius, landmark_color(idx), -1)
            cv2.circle(image, pt, point_radius, (0, 0, 0), 1)

    return image


def draw_crop_rect(
    image: np.ndarray,
    crop: Optional[Rect],
    color: Tuple[int, int, int] = CROP_BOX_COLOR,
    thickness: int = 2
) -> np.ndarray:
    """Draw the crop window (no-op when crop is None)"""
    import cv2

    if crop is None:
        return image
    x1, y1 = int(round(crop.x)), int(round(crop.y))
    x2, y2 = int(round(crop.right)), int(round(crop.bottom))
    cv2.rectangle(image, (x1, y1), (x2, y2), color, thickness)
    return image


def draw_keypoints(
    image: np.ndarray,
    features: KeypointSet,
    color: Tuple[int, int, int] = KEYPOINT_COLOR,
    radius: int = 3
) -> np.ndarray:
    """
    Draw keypoint circles

    Args:
        image: Input image
        features: Keypoints in this image's pixel space
        color: (B, G, R) color
        radius: Circle radius

    Returns:
        Modified image with keypoints drawn
    """
    import cv2

    for kp in features.keypoints:
        cv2.circle(image, (int(round(kp.x)), int(round(kp.y))), radius, color, 1, cv2.LINE_AA)

    return image


def _to_bgr(image: np.ndarray) -> np.ndarray:
    import cv2

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image.copy()


def draw_matches(
    image_a: np.ndarray,
    features_a: KeypointSet,
    image_b: np.ndarray,
    features_b: KeypointSet,
    matches: Sequence[Match],
    draw_outliers: bool = True,
    thickness: int = 1
) -> np.ndarray:
    """
    Render image A and B side by side with a line per match

    Inliers are green, outliers red; matches without a classification
    use the inlier color.

    Returns:
        New image of size (max(hA, hB), wA + wB, 3)

    Example:
        >>> canvas = draw_matches(img_a, result.source_features, img_b,
        ...                       result.target_features, result.matches)
    """
    import cv2

    a = _to_bgr(image_a)
    b = _to_bgr(image_b)
    height = max(a.shape[0], b.shape[0])
    width_a = a.shape[1]

    canvas = np.zeros((height, width_a + b.shape[1], 3), dtype=np.uint8)
    canvas[:a.shape[0], :width_a] = a
    canvas[:b.shape[0], width_a:] = b

    for m in matches:
        if m.inlier is False and not draw_outliers:
            continue
        color = OUTLIER_COLOR if m.inlier is False else INLIER_COLOR
        kp_a = features_a.keypoints[m.query_index]
        kp_b = features_b.keypoints[m.train_index]
        pt_a = (int(round(kp_a.x)), int(round(kp_a.y)))
        pt_b = (int(round(kp_b.x)) + width_a, int(round(kp_b.y)))
        cv2.line(canvas, pt_a, pt_b, color, thickness, cv2.LINE_AA)
        cv2.circle(canvas, pt_a, 3, color, 1)
        cv2.circle(canvas, pt_b, 3, color, 1)

    return canvas


def add_text_label(
    image: np.ndarray,
    text: str,
    position: Tuple[int, int] = (10, 30),
    font_scale: float = 0.6,
    thickness: int = 1,
    color: Tuple[int, int, int] = (255, 255, 255),
    bg_color: Optional[Tuple[int, int, int]] = (0, 0, 0)
) -> np.ndarray:
    """
    Add text label to image

    Args:
        image: Input image
        text: Text to display
        position: (x, y) position
        font_scale: Font size
        thickness: Text thickness
        color: (B, G, R) text color
        bg_color: Background color (None for no background)

    Returns:
        Modified image
    """
    import cv2

    font = cv2.FONT_HERSHEY_SIMPLEX
    (text_w, text_h), baseline = cv2.getTextSize(text, font, font_scale, thickness)

    x, y = position

    if bg_color is not None:
        cv2.rectangle(
            image,
            (x - 2, y - text_h - baseline - 2),
            (x + text_w + 2, y + baseline + 2),
            bg_color,
            -1
        )

    cv2.putText(image, text, (x, y), font, font_scale, color, thickness, cv2.LINE_AA)

    return image

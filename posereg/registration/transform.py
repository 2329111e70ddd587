"""
Projecting landmarks through a homography

apply_homography is a pure function. A point whose homogeneous coordinate
w' is (nearly) zero has no finite image and comes back as NaN; the same
holds for NaN input. Callers filter NaN rows themselves.
"""

import logging
from typing import Optional

import numpy as np

from ..core.exceptions import InvalidTransform
from ..geometry import points_to_array
from ..pose.landmarks import PoseFrame, PoseSession

logger = logging.getLogger(__name__)

_W_EPS = 1e-12
_DET_EPS = 1e-12


def validate_homography(h) -> np.ndarray:
    """
    Check that h is a finite, invertible 3x3 matrix

    Returns:
        h as a (3, 3) float64 array

    Raises:
        InvalidTransform: Wrong shape, non-finite entries or singular matrix
    """
    h = np.asarray(h, dtype=np.float64)
    if h.shape != (3, 3):
        raise InvalidTransform(f"Homography must be 3x3, got shape {h.shape}")
    if not np.all(np.isfinite(h)):
        raise InvalidTransform("Homography contains NaN or infinite entries")

    norm = np.linalg.norm(h)
    if norm < _DET_EPS or abs(np.linalg.det(h / norm)) < _DET_EPS:
        raise InvalidTransform("Homography is singular")
    return h


def invert_homography(h) -> np.ndarray:
    """Inverse homography scaled so H[2, 2] == 1 where possible"""
    h = validate_homography(h)
    inv = np.linalg.inv(h)
    if abs(inv[2, 2]) > _W_EPS:
        inv = inv / inv[2, 2]
    return inv


def apply_homography(points, h) -> np.ndarray:
    """
    Map points through h: (x', y', w') = H (x, y, 1), result (x'/w', y'/w')

    Args:
        points: (N, 2) array or a sequence of objects with .x/.y
        h: 3x3 homography

    Returns:
        (N, 2) float64 array; rows are NaN where w' ~ 0 or input is NaN

    Example:
        >>> apply_homography([[10.0, 20.0]], np.eye(3))
        array([[10., 20.]])
    """
    h = np.asarray(h, dtype=np.float64)
    if h.shape != (3, 3):
        raise InvalidTransform(f"Homography must be 3x3, got shape {h.shape}")

    if isinstance(points, np.ndarray):
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    elif len(points) > 0 and hasattr(points[0], 'x'):
        pts = points_to_array(points)
    else:
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)

    out = np.full(pts.shape, np.nan, dtype=np.float64)
    if len(pts) == 0:
        return out

    homogeneous = np.hstack([pts, np.ones((len(pts), 1))])
    projected = homogeneous @ h.T
    w = projected[:, 2]

    with np.errstate(invalid='ignore'):
        ok = np.isfinite(w) & (np.abs(w) >= _W_EPS)
    out[ok] = projected[ok, :2] / w[ok, None]
    return out


def _transform_frame(frame: PoseFrame, h: np.ndarray) -> PoseFrame:
    if frame.is_empty:
        return frame
    return frame.with_points(apply_homography(frame.points(), h))


def transform_session(
    session: PoseSession,
    h,
    target_width: Optional[int] = None,
    target_height: Optional[int] = None,
) -> PoseSession:
    """
    Map every frame of a complete session into the target image space

    The input session is not modified. Empty frames stay empty and
    crop_rect_used is kept as extraction metadata.

    Args:
        session: Complete PoseSession in source pixel space
        h: Homography from source to target pixels
        target_width: Target image width (defaults to the source size)
        target_height: Target image height

    Returns:
        New complete PoseSession
    """
    session.require_complete()
    h = validate_homography(h)

    frames = [_transform_frame(frame, h) for frame in session.frames]

    nan_frames = sum(
        1 for f in frames if not f.is_empty and np.isnan(f.points()).any()
    )
    if nan_frames:
        logger.warning("%d frames contain points mapped to infinity (NaN)", nan_frames)

    return PoseSession.completed(
        target_width or session.frame_width,
        target_height or session.frame_height,
        frames,
    )

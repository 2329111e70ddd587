"""
Robust affine estimation between two images

An affine map (rotation, scale, shear, translation) needs only three
correspondences and cannot introduce perspective, which makes it the safer
choice when the two views differ little or matches are scarce. The 2x3
result is lifted to 3x3 so it goes through the same landmark transform as a
homography.
"""

import logging

import cv2
import numpy as np

from ..core.constants import DEFAULT_REPROJECTION_THRESHOLD, MIN_AFFINE_POINTS
from ..core.exceptions import DegenerateGeometry, InsufficientCorrespondences
from .homography import HomographyResult, _as_points, _validate_final

logger = logging.getLogger(__name__)


def lift_affine(matrix: np.ndarray) -> np.ndarray:
    """2x3 affine matrix -> 3x3 with last row [0, 0, 1]"""
    matrix = np.asarray(matrix, dtype=np.float64).reshape(2, 3)
    return np.vstack([matrix, [0.0, 0.0, 1.0]])


def estimate_affine(
    src,
    dst,
    reprojection_threshold: float = DEFAULT_REPROJECTION_THRESHOLD,
    *,
    max_iterations: int = 2000,
    confidence: float = 0.995,
    seed: int = 0,
    refine: bool = True,
) -> HomographyResult:
    """
    Estimate a 2D affine map dst ~ A * src with RANSAC

    Runs cv2.estimateAffine2D with OpenCV's RNG seeded from seed, so
    repeated calls on the same input agree.

    Args:
        src: (N, 2) source pixel coordinates
        dst: (N, 2) destination pixel coordinates
        reprojection_threshold: Max inlier error in pixels
        max_iterations: Upper bound on RANSAC iterations
        confidence: Desired confidence of the result
        seed: Seed for OpenCV's RNG
        refine: Levenberg-Marquardt refinement on the inliers

    Returns:
        HomographyResult whose matrix has last row [0, 0, 1]

    Raises:
        InsufficientCorrespondences: Fewer than 3 pairs or mismatched lengths
        DegenerateGeometry: No model with at least 3 inliers

    Example:
        >>> result = estimate_affine(src, dst, 3.0)
        >>> result.matrix[2]
        array([0., 0., 1.])
    """
    src = _as_points(src)
    dst = _as_points(dst)
    if len(src) != len(dst):
        raise InsufficientCorrespondences(
            f"src has {len(src)} points but dst has {len(dst)}"
        )
    if len(src) < MIN_AFFINE_POINTS:
        raise InsufficientCorrespondences(
            f"At least {MIN_AFFINE_POINTS} correspondences required, got {len(src)}"
        )

    cv2.setRNGSeed(seed)
    matrix, mask = cv2.estimateAffine2D(
        src.astype(np.float32),
        dst.astype(np.float32),
        method=cv2.RANSAC,
        ransacReprojThreshold=reprojection_threshold,
        maxIters=max_iterations,
        confidence=confidence,
        refineIters=10 if refine else 0,
    )
    if matrix is None or mask is None:
        raise DegenerateGeometry("cv2.estimateAffine2D found no model")

    inlier_mask = mask.ravel().astype(bool)
    num_inliers = int(inlier_mask.sum())
    if num_inliers < MIN_AFFINE_POINTS:
        raise DegenerateGeometry(
            f"No affine transform with at least {MIN_AFFINE_POINTS} inliers "
            f"(best: {num_inliers} of {len(src)})"
        )

    lifted = lift_affine(matrix)
    _validate_final(lifted)
    logger.debug("Affine model has %d/%d inliers", num_inliers, len(src))
    return HomographyResult(lifted, inlier_mask, num_inliers)

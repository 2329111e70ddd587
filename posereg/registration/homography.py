"""
Robust homography estimation (RANSAC + normalized DLT)

Given pixel correspondences src[i] -> dst[i], estimate a 3x3 projective
transform H and classify each correspondence as inlier/outlier. The
sampling is driven by a seeded numpy Generator, so the same input and seed
always produce the same result.

Provides:
- estimate_homography: the estimator
- HomographyResult: matrix + inlier mask parallel to the input
- HomographyEstimator: config wrapper with an OpenCV backend
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..core.config import RansacConfig
from ..core.constants import DEFAULT_REPROJECTION_THRESHOLD, MIN_HOMOGRAPHY_POINTS
from ..core.exceptions import DegenerateGeometry, InsufficientCorrespondences

logger = logging.getLogger(__name__)

_EPS = 1e-12
_COLLINEAR_SIN = 1e-6


@dataclass(frozen=True, eq=False)
class HomographyResult:
    """
    Estimated homography

    Attributes:
        matrix: (3, 3) float64 mapping src pixels to dst pixels
        inlier_mask: (N,) bool, parallel to the correspondences passed in
        num_inliers: Number of True entries in inlier_mask
    """
    matrix: np.ndarray
    inlier_mask: np.ndarray
    num_inliers: int


def _as_points(points) -> np.ndarray:
    return np.asarray(points, dtype=np.float64).reshape(-1, 2)


def _normalization_transform(points: np.ndarray) -> Optional[np.ndarray]:
    """Similarity moving the centroid to 0 and mean distance to sqrt(2)"""
    centroid = points.mean(axis=0)
    mean_dist = np.linalg.norm(points - centroid, axis=1).mean()
    if mean_dist < _EPS:
        return None
    s = math.sqrt(2.0) / mean_dist
    return np.array([
        [s, 0.0, -s * centroid[0]],
        [0.0, s, -s * centroid[1]],
        [0.0, 0.0, 1.0],
    ])


def _to_homogeneous(points: np.ndarray) -> np.ndarray:
    return np.hstack([points, np.ones((len(points), 1))])


def fit_homography_dlt(src: np.ndarray, dst: np.ndarray) -> Optional[np.ndarray]:
    """
    Direct linear transform with Hartley normalization

    Uses all given points (least squares for more than four).

    Returns:
        3x3 matrix scaled so H[2, 2] == 1 when possible, or None if the
        points are degenerate
    """
    t_src = _normalization_transform(src)
    t_dst = _normalization_transform(dst)
    if t_src is None or t_dst is None:
        return None

    src_n = (t_src @ _to_homogeneous(src).T).T
    dst_n = (t_dst @ _to_homogeneous(dst).T).T

    n = len(src)
    a = np.zeros((2 * n, 9))
    for i in range(n):
        x, y, _ = src_n[i]
        u, v, _ = dst_n[i]
        a[2 * i] = [-x, -y, -1.0, 0.0, 0.0, 0.0, u * x, u * y, u]
        a[2 * i + 1] = [0.0, 0.0, 0.0, -x, -y, -1.0, v * x, v * y, v]

    try:
        _, _, vt = np.linalg.svd(a)
    except np.linalg.LinAlgError:
        return None

    h_n = vt[-1].reshape(3, 3)
    h = np.linalg.inv(t_dst) @ h_n @ t_src
    return _normalize_scale(h)


def _normalize_scale(h: np.ndarray) -> np.ndarray:
    if abs(h[2, 2]) > _EPS:
        return h / h[2, 2]
    norm = np.linalg.norm(h)
    return h / norm if norm > _EPS else h


def reprojection_errors(h: np.ndarray, src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    """
    Euclidean distance between H * src and dst for every correspondence

    Points that project to infinity get an error of +inf.
    """
    projected = _to_homogeneous(src) @ h.T
    w = projected[:, 2]
    errors = np.full(len(src), np.inf)
    ok = np.abs(w) > _EPS
    xy = projected[ok, :2] / w[ok, None]
    errors[ok] = np.linalg.norm(xy - dst[ok], axis=1)
    return errors


def _has_collinear_triple(points: np.ndarray) -> bool:
    for i, j, k in ((0, 1, 2), (0, 1, 3), (0, 2, 3), (1, 2, 3)):
        ab = points[j] - points[i]
        ac = points[k] - points[i]
        cross = abs(ab[0] * ac[1] - ab[1] * ac[0])
        scale = np.linalg.norm(ab) * np.linalg.norm(ac)
        if scale < _EPS or cross <= _COLLINEAR_SIN * scale:
            return True
    return False


def _adaptive_iterations(num_inliers: int, num_points: int, confidence: float) -> float:
    inlier_ratio = num_inliers / num_points
    p_bad_sample = 1.0 - inlier_ratio ** MIN_HOMOGRAPHY_POINTS
    if p_bad_sample <= 0.0:
        return 0
    if p_bad_sample >= 1.0:
        return math.inf
    return math.ceil(math.log(1.0 - confidence) / math.log(p_bad_sample))


def _validate_final(h: np.ndarray) -> None:
    if not np.all(np.isfinite(h)):
        raise DegenerateGeometry("Estimated homography has non-finite entries")
    scaled = h / np.linalg.norm(h)
    if abs(np.linalg.det(scaled)) < _EPS:
        raise DegenerateGeometry("Estimated homography is singular")


def estimate_homography(
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
    Estimate H with dst ~ H * src using RANSAC

    Each iteration fits a homography to four random correspondences and
    counts those with reprojection error <= reprojection_threshold. The
    model with the most inliers wins (lower total inlier error breaks ties).
    The iteration count shrinks adaptively once a good model is found.

    Args:
        src: (N, 2) source pixel coordinates
        dst: (N, 2) destination pixel coordinates
        reprojection_threshold: Max inlier error in pixels
        max_iterations: Upper bound on RANSAC iterations
        confidence: Desired probability of drawing one outlier-free sample
        seed: Seed for the sampler
        refine: Re-fit on all inliers afterwards

    Returns:
        HomographyResult with an inlier mask parallel to src/dst

    Raises:
        InsufficientCorrespondences: Fewer than 4 pairs or mismatched lengths
        DegenerateGeometry: No model with at least 4 inliers

    Example:
        >>> result = estimate_homography(src, dst, 3.0)
        >>> print(result.num_inliers, result.matrix)
    """
    src = _as_points(src)
    dst = _as_points(dst)
    if len(src) != len(dst):
        raise InsufficientCorrespondences(
            f"src has {len(src)} points but dst has {len(dst)}"
        )
    n = len(src)
    if n < MIN_HOMOGRAPHY_POINTS:
        raise InsufficientCorrespondences(
            f"At least {MIN_HOMOGRAPHY_POINTS} correspondences required, got {n}"
        )

    rng = np.random.default_rng(seed)

    best_h: Optional[np.ndarray] = None
    best_mask: Optional[np.ndarray] = None
    best_count = 0
    best_error = math.inf

    bound = max_iterations
    iteration = 0
    while iteration < bound:
        iteration += 1
        sample = rng.choice(n, MIN_HOMOGRAPHY_POINTS, replace=False)
        if _has_collinear_triple(src[sample]) or _has_collinear_triple(dst[sample]):
            continue

        h = fit_homography_dlt(src[sample], dst[sample])
        if h is None or not np.all(np.isfinite(h)):
            continue

        errors = reprojection_errors(h, src, dst)
        mask = errors <= reprojection_threshold
        count = int(mask.sum())
        total_error = float(errors[mask].sum())

        if count > best_count or (count == best_count and count > 0 and total_error < best_error):
            best_h, best_mask = h, mask
            best_count, best_error = count, total_error
            bound = min(bound, _adaptive_iterations(count, n, confidence))

    logger.debug("RANSAC ran %d iterations, best model has %d/%d inliers",
                 iteration, best_count, n)

    if best_h is None or best_count < MIN_HOMOGRAPHY_POINTS:
        raise DegenerateGeometry(
            f"No homography with at least {MIN_HOMOGRAPHY_POINTS} inliers "
            f"(best: {best_count} of {n})"
        )

    if refine and best_count > MIN_HOMOGRAPHY_POINTS:
        refined = fit_homography_dlt(src[best_mask], dst[best_mask])
        if refined is not None and np.all(np.isfinite(refined)):
            errors = reprojection_errors(refined, src, dst)
            mask = errors <= reprojection_threshold
            if mask.sum() >= best_count:
                best_h, best_mask = refined, mask
                best_count = int(mask.sum())

    _validate_final(best_h)
    return HomographyResult(
        matrix=_normalize_scale(best_h),
        inlier_mask=best_mask.copy(),
        num_inliers=best_count,
    )


def _estimate_opencv(src: np.ndarray, dst: np.ndarray, config: RansacConfig) -> HomographyResult:
    import cv2

    h, mask = cv2.findHomography(
        src.astype(np.float32),
        dst.astype(np.float32),
        cv2.RANSAC,
        config.reprojection_threshold,
        maxIters=config.max_iterations,
        confidence=config.confidence,
    )
    if h is None or mask is None:
        raise DegenerateGeometry("cv2.findHomography found no model")

    inlier_mask = mask.ravel().astype(bool)
    num_inliers = int(inlier_mask.sum())
    if num_inliers < MIN_HOMOGRAPHY_POINTS:
        raise DegenerateGeometry(f"Only {num_inliers} inliers")
    _validate_final(h)
    return HomographyResult(_normalize_scale(h.astype(np.float64)), inlier_mask, num_inliers)


class HomographyEstimator:
    """
    Image-to-image transform estimation configured from RansacConfig

    RansacConfig.method picks a full homography or an affine map; both
    come back as a 3x3 matrix.

    Example:
        >>> estimator = HomographyEstimator(RansacConfig(reprojection_threshold=3.0))
        >>> result = estimator.estimate(src, dst)
    """

    def __init__(self, config: Optional[RansacConfig] = None):
        self.config = config or RansacConfig()

    def estimate(self, src, dst) -> HomographyResult:
        src = _as_points(src)
        dst = _as_points(dst)
        if self.config.method == "affine":
            from .affine import estimate_affine

            return estimate_affine(
                src,
                dst,
                self.config.reprojection_threshold,
                max_iterations=self.config.max_iterations,
                confidence=self.config.confidence,
                seed=self.config.seed,
                refine=self.config.refine,
            )

        if self.config.backend == "opencv":
            if len(src) != len(dst) or len(src) < MIN_HOMOGRAPHY_POINTS:
                raise InsufficientCorrespondences(
                    f"At least {MIN_HOMOGRAPHY_POINTS} matching correspondences required"
                )
            return _estimate_opencv(src, dst, self.config)

        return estimate_homography(
            src,
            dst,
            self.config.reprojection_threshold,
            max_iterations=self.config.max_iterations,
            confidence=self.config.confidence,
            seed=self.config.seed,
            refine=self.config.refine,
        )

    def estimate_pairs(self, pairs) -> HomographyResult:
        """Estimate from a sequence of ((sx, sy), (dx, dy)) pairs"""
        src, dst = split_pairs(pairs)
        return self.estimate(src, dst)


def split_pairs(pairs) -> Tuple[np.ndarray, np.ndarray]:
    """Split ((sx, sy), (dx, dy)) pairs into parallel (N, 2) arrays"""
    pairs = list(pairs)
    if not pairs:
        empty = np.empty((0, 2), dtype=np.float64)
        return empty, empty.copy()
    src = np.array([p[0] for p in pairs], dtype=np.float64)
    dst = np.array([p[1] for p in pairs], dtype=np.float64)
    return src, dst

"""
Registration module - Homography estimation and landmark transforms

Provides:
- RANSAC homography and affine estimation
- Point / session projection through a homography
"""

from .affine import estimate_affine, lift_affine
from .homography import (
    HomographyEstimator,
    HomographyResult,
    estimate_homography,
    fit_homography_dlt,
    reprojection_errors,
    split_pairs,
)
from .transform import (
    apply_homography,
    invert_homography,
    transform_session,
    validate_homography,
)

__all__ = [
    # Estimation
    "HomographyEstimator",
    "HomographyResult",
    "estimate_homography",
    "fit_homography_dlt",
    "reprojection_errors",
    "split_pairs",
    "estimate_affine",
    "lift_affine",
    # Transform
    "apply_homography",
    "invert_homography",
    "transform_session",
    "validate_homography",
]

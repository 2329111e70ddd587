"""
Binary descriptor matching with Lowe's ratio test

Provides:
- Exact brute-force Hamming distances between two KeypointSets
- Two-nearest-neighbour ratio filtering
- Conversion of matches to pixel correspondences for homography estimation
"""

import logging
from typing import List, Optional, Tuple

import numpy as np
from scipy.spatial.distance import cdist

from ..core.config import MatchConfig
from ..core.constants import DEFAULT_RATIO
from ..core.exceptions import ValidationError
from .types import KeypointSet, Match

logger = logging.getLogger(__name__)


def hamming_distance_matrix(descriptors_a: np.ndarray, descriptors_b: np.ndarray) -> np.ndarray:
    """
    Pairwise Hamming distances between two binary descriptor matrices

    Args:
        descriptors_a: (N, D) uint8
        descriptors_b: (M, D) uint8

    Returns:
        (N, M) int array of differing bit counts
    """
    if descriptors_a.shape[1] != descriptors_b.shape[1]:
        raise ValidationError(
            f"Descriptor widths differ: {descriptors_a.shape[1]} vs {descriptors_b.shape[1]}"
        )
    bits_a = np.unpackbits(descriptors_a, axis=1).astype(bool)
    bits_b = np.unpackbits(descriptors_b, axis=1).astype(bool)
    n_bits = bits_a.shape[1]

    # cdist returns the fraction of differing bits
    fraction = cdist(bits_a, bits_b, metric='hamming')
    return np.rint(fraction * n_bits).astype(np.int64)


def match_descriptors(
    set_a: KeypointSet,
    set_b: KeypointSet,
    ratio: float = DEFAULT_RATIO
) -> List[Match]:
    """
    Match every descriptor of set_a to its nearest neighbour in set_b

    A match is kept only when d1 < ratio * d2, where d1 <= d2 are the two
    smallest distances. Equal distances resolve to the lower train index.

    Args:
        set_a: Source (query) keypoints
        set_b: Target (train) keypoints
        ratio: Lowe ratio threshold

    Returns:
        Matches ordered by query index; empty when either set is empty or
        set_b has fewer than two descriptors

    Example:
        >>> matches = match_descriptors(features_a, features_b, ratio=0.75)
        >>> print(f"{len(matches)} good matches")
    """
    if set_a.is_empty or set_b.is_empty:
        return []
    if len(set_b) < 2:
        return []

    distances = hamming_distance_matrix(set_a.descriptors, set_b.descriptors)
    order = np.argsort(distances, axis=1, kind='stable')[:, :2]

    matches: List[Match] = []
    for query_index in range(distances.shape[0]):
        best, second = order[query_index]
        d1 = distances[query_index, best]
        d2 = distances[query_index, second]
        if d1 < ratio * d2:
            matches.append(Match(query_index, int(best), float(d1)))

    logger.debug("Ratio test kept %d of %d descriptors", len(matches), len(set_a))
    return matches


def _match_opencv(set_a: KeypointSet, set_b: KeypointSet, ratio: float) -> List[Match]:
    import cv2

    if set_a.is_empty or set_b.is_empty or len(set_b) < 2:
        return []

    matcher = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=False)
    knn = matcher.knnMatch(set_a.descriptors, set_b.descriptors, k=2)

    matches: List[Match] = []
    for pair in knn:
        if len(pair) < 2:
            continue
        m, n = pair
        if m.distance < ratio * n.distance:
            matches.append(Match(m.queryIdx, m.trainIdx, float(m.distance)))
    return matches


class FeatureMatcher:
    """
    Descriptor matcher configured from MatchConfig

    The default "numpy" backend is exact and deterministic. The "opencv"
    backend runs BFMatcher.knnMatch and is kept for cross-checking.

    Example:
        >>> matcher = FeatureMatcher(MatchConfig(ratio=0.7))
        >>> matches = matcher.match(features_a, features_b)
    """

    def __init__(self, config: Optional[MatchConfig] = None):
        self.config = config or MatchConfig()

    def match(
        self,
        set_a: KeypointSet,
        set_b: KeypointSet,
        ratio: Optional[float] = None
    ) -> List[Match]:
        ratio = self.config.ratio if ratio is None else ratio
        if self.config.backend == "opencv":
            return _match_opencv(set_a, set_b, ratio)
        return match_descriptors(set_a, set_b, ratio)


def matches_to_correspondences(
    matches: List[Match],
    set_a: KeypointSet,
    set_b: KeypointSet
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Look up the keypoint positions of each match

    Args:
        matches: Matches between set_a (query) and set_b (train)
        set_a: Source keypoints in pixel-full space
        set_b: Target keypoints in pixel-full space

    Returns:
        (src, dst) float64 arrays of shape (len(matches), 2), row i
        belonging to matches[i]
    """
    if not matches:
        empty = np.empty((0, 2), dtype=np.float64)
        return empty, empty.copy()

    points_a = set_a.points()
    points_b = set_b.points()
    query = np.array([m.query_index for m in matches], dtype=np.int64)
    train = np.array([m.train_index for m in matches], dtype=np.int64)
    return points_a[query], points_b[train]

"""
Features module - ORB keypoints, descriptor matching and feature files

Provides:
- KeypointSet / Keypoint / Match containers
- ORB detection (whole image or crop)
- Hamming ratio-test matching
- JSON export/import
"""

from .types import Keypoint, KeypointSet, Match, keypoints_from_arrays
from .orb import ORBDetector, to_grayscale
from .matcher import (
    FeatureMatcher,
    hamming_distance_matrix,
    match_descriptors,
    matches_to_correspondences,
)
from .serialization import export_features, import_features, save_features, load_features

__all__ = [
    # Types
    "Keypoint",
    "KeypointSet",
    "Match",
    "keypoints_from_arrays",
    # Detection
    "ORBDetector",
    "to_grayscale",
    # Matching
    "FeatureMatcher",
    "hamming_distance_matrix",
    "match_descriptors",
    "matches_to_correspondences",
    # Serialization
    "export_features",
    "import_features",
    "save_features",
    "load_features",
]

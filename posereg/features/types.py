"""
Keypoint, descriptor and match containers

A KeypointSet is produced once per detect call and treated as immutable
afterwards. Keypoint positions are pixels in the image the set was
detected in (image_width x image_height); to_full_frame() moves a set
detected in a crop into full-image pixels.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..core.constants import ORB_DESCRIPTOR_BYTES
from ..core.exceptions import ValidationError
from ..geometry import Rect


@dataclass(frozen=True)
class Keypoint:
    """Single ORB keypoint (pixel position in the detected image)"""
    x: float
    y: float
    size: float = 31.0
    angle: float = -1.0
    response: float = 0.0
    octave: int = 0
    class_id: int = -1


@dataclass(frozen=True)
class Match:
    """
    Descriptor correspondence

    query_index indexes the source set, train_index the target set.
    inlier is None until homography estimation classifies the match.
    """
    query_index: int
    train_index: int
    distance: float
    inlier: Optional[bool] = None


@dataclass(frozen=True, eq=False)
class KeypointSet:
    """
    Keypoints with their binary descriptors, aligned 1:1 by index

    Attributes:
        keypoints: Detected keypoints
        descriptors: (n_keypoints, 32) uint8 matrix
        image_width: Width of the image the keypoints were detected in
        image_height: Height of that image
    """
    keypoints: Tuple[Keypoint, ...]
    descriptors: np.ndarray
    image_width: int
    image_height: int

    def __post_init__(self):
        keypoints = tuple(self.keypoints)
        descriptors = np.array(self.descriptors, dtype=np.uint8, copy=True)
        if descriptors.size == 0:
            descriptors = descriptors.reshape(0, ORB_DESCRIPTOR_BYTES)
        if descriptors.ndim != 2:
            raise ValidationError(
                f"descriptors must be a 2D matrix, got shape {descriptors.shape}"
            )
        if descriptors.shape[0] != len(keypoints):
            raise ValidationError(
                f"{len(keypoints)} keypoints but {descriptors.shape[0]} descriptor rows"
            )
        if self.image_width <= 0 or self.image_height <= 0:
            raise ValidationError("image_width and image_height must be > 0")

        descriptors.setflags(write=False)
        object.__setattr__(self, 'keypoints', keypoints)
        object.__setattr__(self, 'descriptors', descriptors)

    @classmethod
    def empty(cls, image_width: int, image_height: int) -> "KeypointSet":
        return cls((), np.empty((0, ORB_DESCRIPTOR_BYTES), dtype=np.uint8),
                   image_width, image_height)

    def __len__(self) -> int:
        return len(self.keypoints)

    @property
    def is_empty(self) -> bool:
        return len(self.keypoints) == 0 or self.descriptors.shape[0] == 0

    @property
    def descriptor_bytes(self) -> int:
        return int(self.descriptors.shape[1])

    def points(self) -> np.ndarray:
        """(N, 2) array of keypoint positions"""
        if not self.keypoints:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([[kp.x, kp.y] for kp in self.keypoints], dtype=np.float64)

    def to_full_frame(self, crop: Rect, full_width: int, full_height: int) -> "KeypointSet":
        """
        Re-express a set detected inside a crop in full-image pixels

        Args:
            crop: Crop rectangle the set was detected in
            full_width: Full image width
            full_height: Full image height

        Returns:
            New KeypointSet with offset positions and full image size;
            descriptors are shared unchanged
        """
        keypoints = tuple(
            replace(kp, x=kp.x + crop.x, y=kp.y + crop.y) for kp in self.keypoints
        )
        return KeypointSet(keypoints, self.descriptors, full_width, full_height)


def keypoints_from_arrays(
    points: np.ndarray,
    descriptors: np.ndarray,
    image_width: int,
    image_height: int,
    sizes: Optional[Sequence[float]] = None,
) -> KeypointSet:
    """
    Build a KeypointSet from raw arrays

    Args:
        points: (N, 2) positions
        descriptors: (N, D) uint8
        image_width: Image width
        image_height: Image height
        sizes: Optional per-keypoint sizes

    Returns:
        KeypointSet
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    keypoints: List[Keypoint] = []
    for i, (x, y) in enumerate(points):
        size = float(sizes[i]) if sizes is not None else 31.0
        keypoints.append(Keypoint(float(x), float(y), size=size))
    return KeypointSet(tuple(keypoints), descriptors, image_width, image_height)

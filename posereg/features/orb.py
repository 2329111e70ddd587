"""
ORB keypoint detection

Thin adapter over OpenCV's ORB detector/descriptor: image in, KeypointSet out.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from ..core.config import OrbConfig
from ..core.exceptions import ValidationError
from ..geometry import Rect
from .types import Keypoint, KeypointSet

logger = logging.getLogger(__name__)

_SCORE_TYPES = {
    "harris": cv2.ORB_HARRIS_SCORE,
    "fast": cv2.ORB_FAST_SCORE,
}


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert a BGR, BGRA or single-channel image to 8-bit grayscale

    Raises:
        ValidationError: If the image shape is not supported
    """
    if image is None or image.size == 0:
        raise ValidationError("Cannot detect features on an empty image")
    if image.ndim == 2:
        gray = image
    elif image.ndim == 3 and image.shape[2] == 1:
        gray = image[:, :, 0]
    elif image.ndim == 3 and image.shape[2] == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    elif image.ndim == 3 and image.shape[2] == 4:
        gray = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    else:
        raise ValidationError(f"Unsupported image shape: {image.shape}")
    if gray.dtype != np.uint8:
        gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    return gray


class ORBDetector:
    """
    ORB feature detector

    Example:
        >>> from posereg.features import ORBDetector
        >>> detector = ORBDetector()
        >>> features = detector.detect(image)
        >>> print(len(features), features.descriptors.shape)
    """

    def __init__(self, config: Optional[OrbConfig] = None):
        self.config = config or OrbConfig()
        self._orb = cv2.ORB_create(
            nfeatures=self.config.max_features,
            scaleFactor=self.config.scale_factor,
            nlevels=self.config.levels,
            edgeThreshold=self.config.edge_threshold,
            firstLevel=self.config.first_level,
            WTA_K=self.config.wta_k,
            scoreType=_SCORE_TYPES[self.config.score_type],
            patchSize=self.config.patch_size,
            fastThreshold=self.config.fast_threshold,
        )

    def detect(self, image: np.ndarray) -> KeypointSet:
        """
        Detect keypoints and compute descriptors on a whole image

        Args:
            image: BGR, BGRA or grayscale image

        Returns:
            KeypointSet in the image's pixel coordinates; empty (with a
            (0, 32) descriptor matrix) when nothing is found
        """
        gray = to_grayscale(image)
        height, width = gray.shape[:2]

        cv_keypoints, descriptors = self._orb.detectAndCompute(gray, None)

        if descriptors is None or not cv_keypoints:
            logger.info("No ORB features found in %dx%d image", width, height)
            return KeypointSet.empty(width, height)

        keypoints = tuple(
            Keypoint(
                x=float(kp.pt[0]),
                y=float(kp.pt[1]),
                size=float(kp.size),
                angle=float(kp.angle),
                response=float(kp.response),
                octave=int(kp.octave),
                class_id=int(kp.class_id),
            )
            for kp in cv_keypoints
        )
        logger.debug("Detected %d ORB features in %dx%d image", len(keypoints), width, height)
        return KeypointSet(keypoints, descriptors, width, height)

    def detect_in_crop(self, image: np.ndarray, crop: Optional[Rect] = None) -> KeypointSet:
        """
        Detect inside a crop and report keypoints in full-image pixels

        Args:
            image: Full image
            crop: Region to detect in (None = whole image); snapped to
                  whole pixels before slicing

        Returns:
            KeypointSet with positions offset into the full image and
            image size equal to the full image
        """
        height, width = image.shape[:2]
        if crop is None:
            return self.detect(image)

        crop = crop.clamp_to(width, height).to_pixel_grid()
        local = self.detect(crop.slice(image))
        return local.to_full_frame(crop, width, height)

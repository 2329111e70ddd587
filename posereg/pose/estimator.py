"""
Pose landmark detection for single images

Provides:
- PoseDetector: protocol every detector backend satisfies
- MediaPipePoseDetector: MediaPipe Tasks PoseLandmarker wrapper (singleton)
- get_pose_detector: cached global detector for config.model_type

The detector is an opaque collaborator: image in, 33 landmarks normalized
to that image out (or None when no person is found).
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

import numpy as np

from ..core.config import PoseConfig
from ..core.exceptions import ModelLoadError, InferenceError
from .landmarks import DetectedLandmark

logger = logging.getLogger(__name__)


class PoseDetector(Protocol):
    """Anything that maps an image to normalized landmarks"""

    def detect(self, image: np.ndarray) -> Optional[List[DetectedLandmark]]:
        ...


class MediaPipePoseDetector:
    """
    MediaPipe PoseLandmarker wrapper with singleton pattern

    Runs in IMAGE mode and returns the first detected pose.

    Example:
        >>> from posereg.pose import MediaPipePoseDetector
        >>> from posereg.core.config import PoseConfig
        >>> detector = MediaPipePoseDetector(PoseConfig(model_path="pose_landmarker_lite.task"))
        >>> landmarks = detector.detect(crop_image)
    """

    _instance: Optional["MediaPipePoseDetector"] = None

    def __new__(cls, config: PoseConfig):
        """Singleton factory"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config: PoseConfig):
        """
        Initialize pose detector

        Args:
            config: PoseConfig with model parameters

        Raises:
            ModelLoadError: If model cannot be loaded
        """
        if self._initialized:
            return

        self.config = config
        self._landmarker = None
        self._mp = None
        self._load_model()
        self._initialized = True

    def _load_model(self) -> None:
        """
        Load MediaPipe pose landmarker

        Raises:
            ModelLoadError: If model loading fails
        """
        try:
            import mediapipe as mp
            from mediapipe.tasks import python as mp_python
            from mediapipe.tasks.python import vision
        except ImportError:
            raise ModelLoadError(
                "mediapipe package not installed. Install with: pip install mediapipe"
            )

        model_path = Path(self.config.model_path)
        if not model_path.exists():
            raise ModelLoadError(f"Pose model file not found: {model_path}")

        try:
            options = vision.PoseLandmarkerOptions(
                base_options=mp_python.BaseOptions(model_asset_path=str(model_path)),
                running_mode=vision.RunningMode.IMAGE,
                num_poses=self.config.num_poses,
                min_pose_detection_confidence=self.config.min_detection_confidence,
            )
            self._landmarker = vision.PoseLandmarker.create_from_options(options)
            self._mp = mp
        except Exception as e:
            raise ModelLoadError(
                f"Failed to load pose model '{self.config.model_path}': {e}"
            )
        logger.info("Loaded pose model %s", model_path)

    def detect(self, image: np.ndarray) -> Optional[List[DetectedLandmark]]:
        """
        Detect pose landmarks on a BGR image

        Args:
            image: (H, W, 3) BGR image (typically the crop sub-image)

        Returns:
            List of 33 DetectedLandmark normalized to the image, or None
            when no person is found

        Raises:
            InferenceError: If the model fails on this image
        """
        if self._landmarker is None:
            raise ModelLoadError("Pose model not initialized")

        if image.size == 0:
            return None

        try:
            import cv2
            rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
            mp_image = self._mp.Image(
                image_format=self._mp.ImageFormat.SRGB,
                data=np.ascontiguousarray(rgb),
            )
            result = self._landmarker.detect(mp_image)
        except Exception as e:
            raise InferenceError(f"Pose detection failed: {e}")

        if not result.pose_landmarks:
            return None

        return [
            DetectedLandmark(
                x=float(lm.x),
                y=float(lm.y),
                z=float(lm.z),
                visibility=float(lm.visibility if lm.visibility is not None else 0.0),
            )
            for lm in result.pose_landmarks[0]
        ]

    def close(self) -> None:
        """Release the underlying landmarker"""
        if getattr(self, "_landmarker", None) is not None:
            self._landmarker.close()
            self._landmarker = None

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (for testing)"""
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None


# Detector factories keyed by PoseConfig.model_type
_BACKENDS: Dict[str, Callable[[PoseConfig], PoseDetector]] = {
    "mediapipe": MediaPipePoseDetector,
}

# Global instances, one per model type
_global_detectors: Dict[str, PoseDetector] = {}


def get_pose_detector(config: PoseConfig) -> PoseDetector:
    """
    Get or create the global detector for config.model_type

    Args:
        config: PoseConfig

    Returns:
        Detector built by the backend registered for config.model_type

    Raises:
        ModelLoadError: No backend registered for config.model_type
    """
    if config.model_type not in _global_detectors:
        factory = _BACKENDS.get(config.model_type)
        if factory is None:
            raise ModelLoadError(f"No pose backend for model_type {config.model_type!r}")
        logger.info("Creating %s pose detector", config.model_type)
        _global_detectors[config.model_type] = factory(config)
    return _global_detectors[config.model_type]

"""
Data loading utilities for the posereg pipeline

Unified interfaces for loading:
- Images (OpenCV)
- Video frames sampled at a fixed interval
- Error handling and validation
"""

import logging
import math
from pathlib import Path
from typing import Iterator, Tuple

import cv2
import numpy as np

from ..core.exceptions import DataLoadError, ImageLoadError

logger = logging.getLogger(__name__)


class ImageLoader:
    """
    Image loading with error handling

    Supports:
    - Single image loading
    - Automatic color space conversion
    - Format checks
    """

    @staticmethod
    def load(image_path: str, color_space: str = 'bgr') -> np.ndarray:
        """
        Load a single image with error handling

        Args:
            image_path: Path to image file
            color_space: 'bgr' (default, OpenCV) or 'rgb'

        Returns:
            Image array (H, W, 3)

        Raises:
            ImageLoadError: If image cannot be loaded

        Example:
            >>> from posereg.io import ImageLoader
            >>> img = ImageLoader.load("target.jpg")
            >>> print(img.shape)
            (1080, 1920, 3)
        """
        path = Path(image_path)

        # Check existence
        if not path.exists():
            raise ImageLoadError(f"Image file not found: {image_path}")

        # Load image
        image = cv2.imread(str(path))

        if image is None:
            raise ImageLoadError(
                f"Failed to read image (corrupted or unsupported format): {image_path}"
            )

        # Color space conversion
        if color_space.lower() == 'rgb':
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

        return image

    @staticmethod
    def validate_format(image_path: str) -> bool:
        """
        Check if file has a supported image extension

        Args:
            image_path: Path to check

        Returns:
            True if valid image format
        """
        path = Path(image_path)
        valid_extensions = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.webp'}
        return path.suffix.lower() in valid_extensions


class VideoFrameExtractor:
    """
    Samples frames from a video file at a fixed time interval

    Frames are read by seeking to each timestamp t = 0, n, 2n, ... while
    t < duration.

    Example:
        >>> with VideoFrameExtractor("clip.mp4") as video:
        ...     for t, frame in video.iter_frames(0.5):
        ...         print(t, frame.shape)
    """

    def __init__(self, video_path: str):
        """
        Open a video

        Raises:
            DataLoadError: If the file is missing or cannot be decoded
        """
        self.video_path = Path(video_path)
        if not self.video_path.exists():
            raise DataLoadError(f"Video file not found: {video_path}")

        self._capture = cv2.VideoCapture(str(self.video_path))
        if not self._capture.isOpened():
            raise DataLoadError(f"Failed to open video: {video_path}")

        self.fps = float(self._capture.get(cv2.CAP_PROP_FPS) or 0.0)
        self.frame_count = int(self._capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        self.width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))

        if self.fps <= 0 or self.frame_count <= 0:
            self.close()
            raise DataLoadError(f"Video has no readable frames: {video_path}")

    @property
    def duration(self) -> float:
        """Video length in seconds"""
        return self.frame_count / self.fps

    @property
    def frame_size(self) -> Tuple[int, int]:
        return self.width, self.height

    def num_samples(self, interval_seconds: float) -> int:
        """Number of timestamps iter_frames() will visit"""
        return int(math.ceil(self.duration / interval_seconds))

    def iter_frames(self, interval_seconds: float) -> Iterator[Tuple[float, np.ndarray]]:
        """
        Yield (timestamp_seconds, BGR frame) every interval_seconds

        Stops early if a seek/read fails.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        index = 0
        while True:
            timestamp = index * interval_seconds
            if timestamp >= self.duration:
                break

            self._capture.set(cv2.CAP_PROP_POS_MSEC, timestamp * 1000.0)
            ok, frame = self._capture.read()
            if not ok or frame is None:
                logger.warning("Could not read frame at t=%.3fs from %s", timestamp, self.video_path)
                break

            yield timestamp, frame
            index += 1

    def close(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def __enter__(self) -> "VideoFrameExtractor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

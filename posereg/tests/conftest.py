"""
Shared fixtures for posereg tests
"""

import numpy as np
import pytest


def make_texture(width: int = 640, height: int = 480, seed: int = 0, block: int = 8) -> np.ndarray:
    """Random block texture (BGR) with plenty of ORB corners"""
    import cv2

    rng = np.random.default_rng(seed)
    small = rng.integers(0, 256, size=(height // block, width // block), dtype=np.uint8)
    gray = cv2.resize(small, (width, height), interpolation=cv2.INTER_NEAREST)
    gray = cv2.GaussianBlur(gray, (3, 3), 0)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)


def make_landmarks(hip_x: float = 0.5, hip_y: float = 0.6, spread: float = 0.1):
    """33 detector landmarks (crop-normalized) with hips around (hip_x, hip_y)"""
    from posereg.pose.landmarks import DetectedLandmark

    landmarks = [
        DetectedLandmark(x=0.3 + 0.01 * i, y=0.2 + 0.015 * i, z=0.0, visibility=0.9)
        for i in range(33)
    ]
    landmarks[23] = DetectedLandmark(hip_x - spread, hip_y, 0.0, 0.95)
    landmarks[24] = DetectedLandmark(hip_x + spread, hip_y, 0.0, 0.95)
    return landmarks


def make_session(frame_width: int = 640, frame_height: int = 480, num_frames: int = 3,
                 empty_indices=()):
    """Complete PoseSession with 33 landmarks per non-empty frame"""
    from posereg.geometry import Rect
    from posereg.pose.landmarks import PoseFrame, PoseSession, landmarks_from_detection

    crop = Rect(100, 80, 400, 320)
    frames = []
    for i in range(num_frames):
        if i in empty_indices:
            landmarks = ()
        else:
            landmarks = tuple(landmarks_from_detection(make_landmarks(0.5 + 0.02 * i), crop))
        frames.append(PoseFrame(i, 0.5 * i, landmarks, crop))
    return PoseSession.completed(frame_width, frame_height, frames)


class FakePoseDetector:
    """Returns scripted results and records the image shapes it saw"""

    def __init__(self, results):
        self.results = list(results)
        self.shapes = []

    def detect(self, image):
        self.shapes.append(image.shape[:2])
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def texture():
    return make_texture()


@pytest.fixture
def session():
    return make_session()

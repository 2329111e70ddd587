"""
Pose module - 2D landmark detection and pose sequences

Provides:
- Pose detector protocol and MediaPipe backend
- Landmark, frame and session containers
"""

from .estimator import PoseDetector, MediaPipePoseDetector, get_pose_detector
from .landmarks import (
    DetectedLandmark,
    PoseLandmark,
    PoseFrame,
    PoseSession,
    SessionState,
    landmarks_from_detection,
)

__all__ = [
    # Detector
    "PoseDetector",
    "MediaPipePoseDetector",
    "get_pose_detector",
    # Containers
    "DetectedLandmark",
    "PoseLandmark",
    "PoseFrame",
    "PoseSession",
    "SessionState",
    "landmarks_from_detection",
]

"""
Pose landmark containers

Provides:
- DetectedLandmark: raw detector output, normalized to the detected image
- PoseLandmark: named landmark in full-image pixel coordinates
- PoseFrame: landmarks for one sampled video timestamp
- PoseSession: ordered frames with an IDLE -> EXTRACTING -> COMPLETE lifecycle
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..core.constants import NUM_POSE_LANDMARKS, POSE_LANDMARK_NAMES
from ..core.exceptions import SessionStateError
from ..geometry import NormalizedPoint, PixelPoint, Rect, normalized_crop_to_full


@dataclass(frozen=True)
class DetectedLandmark:
    """
    Landmark as returned by a pose detector

    x and y are normalized [0, 1] to the image passed to the detector
    (the crop sub-image during extraction).
    """
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0

    def as_normalized(self) -> NormalizedPoint:
        return NormalizedPoint(self.x, self.y)


@dataclass(frozen=True)
class PoseLandmark:
    """Named landmark in full-image pixel coordinates"""
    name: str
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0

    def as_pixel(self) -> PixelPoint:
        return PixelPoint(self.x, self.y)


def landmarks_from_detection(
    detected: Sequence[DetectedLandmark],
    crop: Rect,
) -> List[PoseLandmark]:
    """
    Convert crop-normalized detector output to named full-image landmarks

    Args:
        detected: Landmarks normalized to the crop sub-image
        crop: Crop rectangle the detector ran on (full-image pixels)

    Returns:
        List of PoseLandmark in full-image pixels, in detector order

    Example:
        >>> lm = landmarks_from_detection([DetectedLandmark(0.5, 0.5)], Rect(100, 100, 200, 200))
        >>> lm[0].x, lm[0].y
        (200.0, 200.0)
    """
    landmarks = []
    for idx, det in enumerate(detected):
        name = POSE_LANDMARK_NAMES[idx] if idx < NUM_POSE_LANDMARKS else f"landmark_{idx}"
        full = normalized_crop_to_full(det.as_normalized(), crop)
        landmarks.append(PoseLandmark(name, full.x, full.y, det.z, det.visibility))
    return landmarks


@dataclass(frozen=True)
class PoseFrame:
    """
    Pose result for one sampled timestamp

    landmarks are in full-image pixels; an empty tuple means no person
    was detected in this frame. crop_rect_used is the crop the detector
    ran on (None when the full frame was used).
    """
    frame_index: int
    timestamp_seconds: float
    landmarks: Tuple[PoseLandmark, ...] = ()
    crop_rect_used: Optional[Rect] = None

    @property
    def is_empty(self) -> bool:
        return len(self.landmarks) == 0

    def points(self) -> np.ndarray:
        """(N, 2) array of landmark pixel coordinates"""
        if self.is_empty:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([[lm.x, lm.y] for lm in self.landmarks], dtype=np.float64)

    def with_points(self, points: np.ndarray) -> "PoseFrame":
        """Copy of this frame with landmark x/y replaced by (N, 2) points"""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        if len(points) != len(self.landmarks):
            raise ValueError(
                f"Expected {len(self.landmarks)} points, got {len(points)}"
            )
        landmarks = tuple(
            replace(lm, x=float(p[0]), y=float(p[1]))
            for lm, p in zip(self.landmarks, points)
        )
        return replace(self, landmarks=landmarks)


class SessionState(Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    COMPLETE = "complete"


@dataclass
class PoseSession:
    """
    Ordered sequence of PoseFrame for one video

    Frames can be appended only while EXTRACTING; once COMPLETE the
    session is read-only. Transforms build new sessions instead of
    mutating an existing one.

    Example:
        >>> session = PoseSession(1920, 1080)
        >>> session.start()
        >>> session.append(PoseFrame(0, 0.0))
        >>> session.complete()
        >>> len(session)
        1
    """
    frame_width: int
    frame_height: int
    state: SessionState = SessionState.IDLE
    reference_image: Optional[np.ndarray] = field(default=None, repr=False, compare=False)
    _frames: List[PoseFrame] = field(default_factory=list, repr=False)

    @classmethod
    def completed(
        cls,
        frame_width: int,
        frame_height: int,
        frames: Sequence[PoseFrame],
        reference_image: Optional[np.ndarray] = None,
    ) -> "PoseSession":
        """Build a COMPLETE session directly from frames"""
        session = cls(frame_width, frame_height, reference_image=reference_image)
        session._frames = list(frames)
        session.state = SessionState.COMPLETE
        return session

    @property
    def frames(self) -> Tuple[PoseFrame, ...]:
        return tuple(self._frames)

    @property
    def is_complete(self) -> bool:
        return self.state is SessionState.COMPLETE

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self):
        return iter(tuple(self._frames))

    def __getitem__(self, idx: int) -> PoseFrame:
        return self._frames[idx]

    def start(self) -> None:
        """IDLE -> EXTRACTING"""
        if self.state is not SessionState.IDLE:
            raise SessionStateError(f"Cannot start session in state {self.state.value}")
        self.state = SessionState.EXTRACTING

    def append(self, frame: PoseFrame) -> None:
        """Append a frame; only allowed while EXTRACTING"""
        if self.state is not SessionState.EXTRACTING:
            raise SessionStateError(
                f"Cannot append frames to session in state {self.state.value}"
            )
        self._frames.append(frame)

    def complete(self) -> None:
        """EXTRACTING -> COMPLETE"""
        if self.state is not SessionState.EXTRACTING:
            raise SessionStateError(f"Cannot complete session in state {self.state.value}")
        self.state = SessionState.COMPLETE

    def require_complete(self) -> None:
        if not self.is_complete:
            raise SessionStateError(
                f"Session must be complete, current state is {self.state.value}"
            )

    def landmark_array(self, num_landmarks: int = NUM_POSE_LANDMARKS) -> np.ndarray:
        """
        Stack all frames into a (T, num_landmarks, 2) array

        Empty frames become rows of NaN.
        """
        out = np.full((len(self._frames), num_landmarks, 2), np.nan, dtype=np.float64)
        for t, frame in enumerate(self._frames):
            pts = frame.points()[:num_landmarks]
            out[t, :len(pts)] = pts
        return out

    def num_detected(self) -> int:
        """Number of frames with a detected pose"""
        return sum(1 for f in self._frames if not f.is_empty)

"""
Pose extraction over a sequence of sampled frames

PoseExtractor drives one PoseSession through IDLE -> EXTRACTING -> COMPLETE.
For every frame:

    crop sub-image (current tracker window)
      -> pose detector (landmarks normalized to the crop)
      -> full-image pixel landmarks, crop recorded on the frame
      -> tracker recenters on the hips for the next frame

Frames are processed strictly in order since each crop depends on the
previous frame's detection.
"""

import logging
from typing import Callable, Iterable, Optional, Tuple

import numpy as np
from tqdm import tqdm

from ..core.config import PipelineConfig
from ..core.exceptions import InferenceError, SessionStateError, ValidationError
from ..geometry import Rect
from ..pose.estimator import PoseDetector
from ..pose.landmarks import PoseFrame, PoseSession, SessionState, landmarks_from_detection
from ..tracking.crop_tracker import CropTracker, hip_anchor

logger = logging.getLogger(__name__)


class PoseExtractor:
    """
    Sequential pose extraction with hip-anchored crop tracking

    Example:
        >>> extractor = PoseExtractor(detector, config, initial_crop=Rect(600, 200, 480, 640))
        >>> session = extractor.run(VideoFrameExtractor("clip.mp4").iter_frames(0.5))
        >>> print(session.num_detected(), "/", len(session))
    """

    def __init__(
        self,
        detector: PoseDetector,
        config: Optional[PipelineConfig] = None,
        initial_crop: Optional[Rect] = None,
    ):
        """
        Initialize extractor

        Args:
            detector: Object with detect(image) -> landmarks or None
            config: PipelineConfig (tracking section is used)
            initial_crop: User-chosen window in full-image pixels; None runs
                          the detector on the whole frame without tracking
        """
        self.detector = detector
        self.config = config or PipelineConfig()
        self.initial_crop = initial_crop
        self.tracker: Optional[CropTracker] = None
        self.session: Optional[PoseSession] = None
        self._frame_index = 0

    @property
    def current_crop(self) -> Optional[Rect]:
        return self.tracker.current_crop if self.tracker is not None else None

    def start(self, frame_width: int, frame_height: int) -> PoseSession:
        """
        Begin a new session for frames of the given size

        Raises:
            SessionStateError: If a session is already being extracted
        """
        if self.session is not None and not self.session.is_complete:
            raise SessionStateError("Extraction already in progress")

        self.session = PoseSession(frame_width, frame_height)
        self.session.start()
        self._frame_index = 0

        if self.initial_crop is not None:
            self.tracker = CropTracker(self.initial_crop, self.config.tracking)
            self.tracker.fit_to_frame(frame_width, frame_height)
        else:
            self.tracker = None

        logger.info("Started extraction on %dx%d frames (crop: %s)",
                    frame_width, frame_height, self.current_crop)
        return self.session

    def _detect(self, image: np.ndarray):
        try:
            return self.detector.detect(image)
        except InferenceError as e:
            logger.warning("Pose detection failed on frame %d: %s", self._frame_index, e)
            return None

    def process_frame(self, timestamp_seconds: float, image: np.ndarray) -> PoseFrame:
        """
        Run detection on one frame and append the result to the session

        Args:
            timestamp_seconds: Sample time in the video
            image: Full BGR frame

        Returns:
            The appended PoseFrame (empty landmarks when no person was found)
        """
        if self.session is None:
            height, width = image.shape[:2]
            self.start(width, height)
        if self.session.state is not SessionState.EXTRACTING:
            raise SessionStateError("process_frame() called outside of extraction")

        height, width = image.shape[:2]
        if (width, height) != (self.session.frame_width, self.session.frame_height):
            raise ValidationError(
                f"Frame size {width}x{height} differs from session size "
                f"{self.session.frame_width}x{self.session.frame_height}"
            )
        if self.session.reference_image is None:
            self.session.reference_image = image.copy()

        # Slice and coordinate mapping must use the same whole-pixel window
        crop = self.current_crop.to_pixel_grid() if self.current_crop is not None else None
        detect_rect = crop if crop is not None else Rect.full_frame(width, height)
        detected = self._detect(detect_rect.slice(image))

        if detected:
            landmarks = tuple(landmarks_from_detection(detected, detect_rect))
        else:
            landmarks = ()

        frame = PoseFrame(
            frame_index=self._frame_index,
            timestamp_seconds=float(timestamp_seconds),
            landmarks=landmarks,
            crop_rect_used=crop,
        )
        self.session.append(frame)
        self._frame_index += 1

        if self.tracker is not None:
            anchor = hip_anchor(detected, self.config.tracking)
            self.tracker.recenter(anchor, width, height)

        return frame

    def finish(self) -> PoseSession:
        """Complete the session and return it"""
        if self.session is None:
            raise SessionStateError("No extraction has been started")
        self.session.complete()
        logger.info("Extraction complete: %d frames, %d with a pose",
                    len(self.session), self.session.num_detected())
        return self.session

    def run(
        self,
        frames: Iterable[Tuple[float, np.ndarray]],
        should_cancel: Optional[Callable[[], bool]] = None,
        show_progress: bool = False,
        total: Optional[int] = None,
    ) -> PoseSession:
        """
        Extract a whole session

        Args:
            frames: Iterable of (timestamp_seconds, image)
            should_cancel: Checked between frames; when it returns True the
                           session is completed with the frames so far
            show_progress: Show a tqdm progress bar
            total: Number of frames, for the progress bar

        Returns:
            Complete PoseSession
        """
        iterator = tqdm(frames, total=total, desc="Extracting poses") if show_progress else frames

        if self.session is not None and self.session.is_complete:
            self.session = None

        for timestamp, image in iterator:
            if should_cancel is not None and should_cancel():
                logger.info("Extraction cancelled at t=%.3fs", timestamp)
                break
            self.process_frame(timestamp, image)

        if self.session is None:
            raise SessionStateError("No frames were processed")
        return self.finish()

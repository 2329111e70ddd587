"""
Landmark interpolation for densifying pose sessions

Pose extraction samples the video every few hundred milliseconds. For
playback at video rate the gaps between samples are filled by linear
interpolation of landmark positions. This is an offline batch transform
over a complete PoseSession; the input session is not modified.

Provides:
- Linear interpolation between two landmark frames
- Session-level interpolation at a target frame rate
- Validation and statistics of an interpolated session
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

import numpy as np

from ..core.constants import DEFAULT_INTERPOLATION_FPS
from ..pose.landmarks import PoseFrame, PoseSession

logger = logging.getLogger(__name__)


def interpolate_landmarks(
    points_a: np.ndarray,
    points_b: np.ndarray,
    alpha: float
) -> np.ndarray:
    """
    Linear interpolation between two (N, 2) landmark arrays

    Args:
        points_a: Source landmarks (N, 2)
        points_b: Target landmarks (N, 2)
        alpha: Interpolation factor in [0, 1]
               0 = points_a, 1 = points_b

    Returns:
        Interpolated (N, 2) array
    """
    points_a = np.asarray(points_a, dtype=np.float64)
    points_b = np.asarray(points_b, dtype=np.float64)
    return (1.0 - alpha) * points_a + alpha * points_b


def _interpolate_frame(frame_a: PoseFrame, frame_b: PoseFrame, alpha: float) -> PoseFrame:
    points = interpolate_landmarks(frame_a.points(), frame_b.points(), alpha)
    vis = [
        (1.0 - alpha) * la.visibility + alpha * lb.visibility
        for la, lb in zip(frame_a.landmarks, frame_b.landmarks)
    ]
    interpolated = frame_a.with_points(points)
    landmarks = tuple(
        replace(lm, visibility=float(v)) for lm, v in zip(interpolated.landmarks, vis)
    )
    timestamp = (1.0 - alpha) * frame_a.timestamp_seconds + alpha * frame_b.timestamp_seconds
    return PoseFrame(
        frame_index=-1,
        timestamp_seconds=timestamp,
        landmarks=landmarks,
        crop_rect_used=None,
    )


def interpolate_session(
    session: PoseSession,
    output_fps: float = DEFAULT_INTERPOLATION_FPS,
    max_gap_seconds: Optional[float] = None
) -> PoseSession:
    """
    Fill the time between sampled frames with interpolated frames

    Between two consecutive frames t_a < t_b, round(output_fps * (t_b - t_a)) - 1
    frames are inserted at evenly spaced alphas. Pairs where either frame is
    empty, the landmark counts differ, or the gap exceeds max_gap_seconds are
    left as they are.

    Args:
        session: Complete PoseSession
        output_fps: Target frame rate of the result
        max_gap_seconds: Largest gap to fill (None = no limit)

    Returns:
        New complete PoseSession with frames renumbered from 0

    Example:
        >>> dense = interpolate_session(session, output_fps=24)
        >>> print(len(dense) >= len(session))
        True
    """
    session.require_complete()
    if output_fps <= 0:
        raise ValueError("output_fps must be > 0")

    frames = sorted(session.frames, key=lambda f: f.timestamp_seconds)
    out: List[PoseFrame] = []

    for i in range(len(frames) - 1):
        frame_a = frames[i]
        frame_b = frames[i + 1]
        out.append(frame_a)

        gap = frame_b.timestamp_seconds - frame_a.timestamp_seconds
        if frame_a.is_empty or frame_b.is_empty:
            continue
        if len(frame_a.landmarks) != len(frame_b.landmarks):
            continue
        if max_gap_seconds is not None and gap > max_gap_seconds:
            continue

        steps = int(round(output_fps * gap)) - 1
        for j in range(1, steps + 1):
            alpha = j / (steps + 1)
            out.append(_interpolate_frame(frame_a, frame_b, alpha))

    if frames:
        out.append(frames[-1])

    renumbered = [replace(f, frame_index=idx) for idx, f in enumerate(out)]
    logger.debug("Interpolated %d frames into %d", len(frames), len(renumbered))

    return PoseSession.completed(
        session.frame_width,
        session.frame_height,
        renumbered,
        reference_image=session.reference_image,
    )


def validate_interpolation(original: PoseSession, interpolated: PoseSession) -> bool:
    """
    Validate interpolation results

    Args:
        original: Session before interpolation
        interpolated: Session after interpolation

    Returns:
        True if every original timestamp is present and timestamps increase
    """
    times_interp = [f.timestamp_seconds for f in interpolated.frames]
    times_orig = [f.timestamp_seconds for f in original.frames]

    # All original frames must be present
    if not all(t in times_interp for t in times_orig):
        return False

    # Check strictly increasing timestamps
    return all(b > a for a, b in zip(times_interp, times_interp[1:]))


def get_interpolation_stats(original: PoseSession, interpolated: PoseSession) -> Dict:
    """
    Compute statistics about interpolation

    Args:
        original: Session before interpolation
        interpolated: Session after interpolation

    Returns:
        Statistics dictionary
    """
    return {
        'num_original': len(original),
        'num_interpolated': len(interpolated),
        'num_frames_added': len(interpolated) - len(original),
        'valid': validate_interpolation(original, interpolated),
    }

"""
PoseSession persistence

Provides:
- JSON save/load of complete sessions (landmarks in full-image pixels)
- CSV export, one row per frame, via SessionRow
"""

import csv
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..core.constants import CSV_SESSION_COLUMNS, POSE_LANDMARK_NAMES, SESSION_FORMAT_VERSION
from ..core.exceptions import DataLoadError, ValidationError
from ..geometry import Rect
from ..pose.landmarks import PoseFrame, PoseLandmark, PoseSession

logger = logging.getLogger(__name__)


def _frame_to_dict(frame: PoseFrame) -> Dict:
    return {
        'frame_index': frame.frame_index,
        'timestamp': frame.timestamp_seconds,
        'crop': frame.crop_rect_used.to_dict() if frame.crop_rect_used is not None else None,
        'landmarks': [
            {'name': lm.name, 'x': lm.x, 'y': lm.y, 'z': lm.z, 'visibility': lm.visibility}
            for lm in frame.landmarks
        ],
    }


def _frame_from_dict(d: Dict) -> PoseFrame:
    crop = d.get('crop')
    return PoseFrame(
        frame_index=int(d['frame_index']),
        timestamp_seconds=float(d['timestamp']),
        landmarks=tuple(
            PoseLandmark(
                name=lm['name'],
                x=float(lm['x']) if lm['x'] is not None else float('nan'),
                y=float(lm['y']) if lm['y'] is not None else float('nan'),
                z=float(lm.get('z', 0.0)),
                visibility=float(lm.get('visibility', 1.0)),
            )
            for lm in d.get('landmarks', [])
        ),
        crop_rect_used=Rect.from_dict(crop) if crop is not None else None,
    )


def session_to_dict(session: PoseSession) -> Dict:
    """Serializable dictionary of a complete session"""
    session.require_complete()
    return {
        'version': SESSION_FORMAT_VERSION,
        'frame_width': session.frame_width,
        'frame_height': session.frame_height,
        'frames': [_frame_to_dict(f) for f in session.frames],
    }


def session_from_dict(data: Dict) -> PoseSession:
    """
    Rebuild a complete session from session_to_dict() output

    Raises:
        DataLoadError: If the document is malformed
    """
    if not isinstance(data, dict):
        raise DataLoadError("Session document must be a JSON object")
    version = data.get('version')
    if version != SESSION_FORMAT_VERSION:
        raise DataLoadError(f"Unsupported session version: {version}")

    try:
        frames = [_frame_from_dict(f) for f in data.get('frames', [])]
        return PoseSession.completed(int(data['frame_width']), int(data['frame_height']), frames)
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise DataLoadError(f"Invalid session document: {e}")


def save_session(path: Union[str, Path], session: PoseSession) -> Path:
    """
    Write a complete session to JSON

    NaN coordinates are written as null.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = session_to_dict(session)
    for frame in data['frames']:
        for lm in frame['landmarks']:
            for key in ('x', 'y'):
                if lm[key] != lm[key]:
                    lm[key] = None

    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
    logger.info("Saved session with %d frames to %s", len(session), path)
    return path


def load_session(path: Union[str, Path]) -> PoseSession:
    """
    Read a session written by save_session()

    Raises:
        DataLoadError: If the file is missing or invalid
    """
    path = Path(path)
    if not path.exists():
        raise DataLoadError(f"Session file not found: {path}")

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON in {path}: {e}")

    return session_from_dict(data)


@dataclass
class SessionRow:
    """One CSV row per PoseFrame"""
    frame: int
    timestamp: float
    crop_x: Optional[float] = None
    crop_y: Optional[float] = None
    crop_width: Optional[float] = None
    crop_height: Optional[float] = None
    landmarks: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @classmethod
    def from_frame(cls, frame: PoseFrame) -> "SessionRow":
        """Create row from a PoseFrame"""
        crop = frame.crop_rect_used
        row = cls(frame=frame.frame_index, timestamp=frame.timestamp_seconds)
        if crop is not None:
            row.crop_x, row.crop_y = crop.x, crop.y
            row.crop_width, row.crop_height = crop.width, crop.height
        for lm in frame.landmarks:
            row.landmarks[lm.name] = {'x': lm.x, 'y': lm.y, 'visibility': lm.visibility}
        return row

    def to_dict(self) -> Dict:
        """Convert to dictionary keyed by CSV_SESSION_COLUMNS (missing values empty)"""
        d = {
            'frame': self.frame,
            'timestamp': self.timestamp,
            'crop_x': self.crop_x,
            'crop_y': self.crop_y,
            'crop_width': self.crop_width,
            'crop_height': self.crop_height,
        }
        for name in POSE_LANDMARK_NAMES:
            lm = self.landmarks.get(name, {})
            d[f'{name}_x'] = lm.get('x')
            d[f'{name}_y'] = lm.get('y')
            d[f'{name}_visibility'] = lm.get('visibility')
        return {k: ('' if v is None else v) for k, v in d.items()}


def write_session_csv(path: Union[str, Path], session: PoseSession) -> Path:
    """
    Write one row per frame; frames without a pose have empty landmark cells

    Example:
        >>> write_session_csv("results/session.csv", session)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    rows: List[SessionRow] = [SessionRow.from_frame(f) for f in session.frames]
    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_SESSION_COLUMNS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row.to_dict())

    logger.info("Wrote %d rows to %s", len(rows), path)
    return path

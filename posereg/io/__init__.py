"""
IO module - Data loading and saving utilities

Provides unified interfaces for:
- Image loading with error handling
- Video frame sampling
- Session JSON/CSV persistence
"""

from .data_loader import ImageLoader, VideoFrameExtractor
from .session_io import (
    SessionRow,
    load_session,
    save_session,
    session_from_dict,
    session_to_dict,
    write_session_csv,
)

__all__ = [
    "ImageLoader",
    "VideoFrameExtractor",
    "SessionRow",
    "load_session",
    "save_session",
    "session_from_dict",
    "session_to_dict",
    "write_session_csv",
]

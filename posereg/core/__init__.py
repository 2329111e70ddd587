"""
Core module - Configuration, constants, exceptions and logging for posereg
"""

from .config import (
    PipelineConfig,
    OrbConfig,
    MatchConfig,
    RansacConfig,
    TrackingConfig,
    PoseConfig,
    PathConfig,
)
from .constants import (
    POSE_LANDMARK_NAMES,
    POSE_CONNECTIONS,
    NUM_POSE_LANDMARKS,
    LEFT_HIP_INDEX,
    RIGHT_HIP_INDEX,
    ORB_DESCRIPTOR_BYTES,
)
from .exceptions import (
    PoseRegException,
    ImageLoadError,
    DataLoadError,
    ModelLoadError,
    InferenceError,
    ConfigError,
    ValidationError,
    FeatureFileError,
    SessionStateError,
    RegistrationError,
    InsufficientCorrespondences,
    DegenerateGeometry,
    EmptyDescriptorSet,
    InvalidTransform,
    handle_exception,
)
from .logging_config import setup_logging

__all__ = [
    "PipelineConfig",
    "OrbConfig",
    "MatchConfig",
    "RansacConfig",
    "TrackingConfig",
    "PoseConfig",
    "PathConfig",
    "POSE_LANDMARK_NAMES",
    "POSE_CONNECTIONS",
    "NUM_POSE_LANDMARKS",
    "LEFT_HIP_INDEX",
    "RIGHT_HIP_INDEX",
    "ORB_DESCRIPTOR_BYTES",
    "PoseRegException",
    "ImageLoadError",
    "DataLoadError",
    "ModelLoadError",
    "InferenceError",
    "ConfigError",
    "ValidationError",
    "FeatureFileError",
    "SessionStateError",
    "RegistrationError",
    "InsufficientCorrespondences",
    "DegenerateGeometry",
    "EmptyDescriptorSet",
    "InvalidTransform",
    "handle_exception",
    "setup_logging",
]

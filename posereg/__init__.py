"""
posereg - Pose sequence extraction and image registration

A Python package for:
- Pose landmark extraction from video with a hip-anchored crop tracker
- ORB feature detection, ratio-test matching and feature files
- RANSAC homography estimation
- Re-registering a pose sequence onto a new image
"""

__version__ = "0.1.0"
__author__ = "posereg contributors"

# Core imports (no heavy external dependencies)
from .core.config import (
    PipelineConfig,
    OrbConfig,
    MatchConfig,
    RansacConfig,
    TrackingConfig,
    PoseConfig,
    PathConfig,
)
from .core.constants import (
    POSE_LANDMARK_NAMES,
    POSE_CONNECTIONS,
    NUM_POSE_LANDMARKS,
    LEFT_HIP_INDEX,
    RIGHT_HIP_INDEX,
)
from .core.exceptions import (
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
)
from .geometry import NormalizedPoint, CropPoint, PixelPoint, Rect

_LAZY = {
    # Tracking
    "CropTracker": ".tracking",
    "hip_anchor": ".tracking",
    "interpolate_session": ".tracking",
    # Pose
    "PoseFrame": ".pose",
    "PoseSession": ".pose",
    "PoseLandmark": ".pose",
    "DetectedLandmark": ".pose",
    "MediaPipePoseDetector": ".pose",
    # Features
    "ORBDetector": ".features",
    "KeypointSet": ".features",
    "Match": ".features",
    "FeatureMatcher": ".features",
    "match_descriptors": ".features",
    "export_features": ".features",
    "import_features": ".features",
    "save_features": ".features",
    "load_features": ".features",
    # Registration
    "estimate_homography": ".registration",
    "estimate_affine": ".registration",
    "HomographyEstimator": ".registration",
    "HomographyResult": ".registration",
    "apply_homography": ".registration",
    "invert_homography": ".registration",
    "transform_session": ".registration",
    # Pipeline
    "PoseExtractor": ".pipeline",
    "Registrar": ".pipeline",
    "RegistrationResult": ".pipeline",
    # IO
    "ImageLoader": ".io",
    "VideoFrameExtractor": ".io",
    "save_session": ".io",
    "load_session": ".io",
    "write_session_csv": ".io",
}


# Lazy imports for modules with external dependencies
def __getattr__(name):
    """Lazy loading for modules with external dependencies"""
    if name in _LAZY:
        from importlib import import_module
        module = import_module(_LAZY[name], __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Version
    "__version__",
    # Config
    "PipelineConfig",
    "OrbConfig",
    "MatchConfig",
    "RansacConfig",
    "TrackingConfig",
    "PoseConfig",
    "PathConfig",
    # Constants
    "POSE_LANDMARK_NAMES",
    "POSE_CONNECTIONS",
    "NUM_POSE_LANDMARKS",
    "LEFT_HIP_INDEX",
    "RIGHT_HIP_INDEX",
    # Exceptions
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
    # Geometry
    "NormalizedPoint",
    "CropPoint",
    "PixelPoint",
    "Rect",
] + sorted(_LAZY)

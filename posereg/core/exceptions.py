"""
Custom exceptions for the posereg pipeline

Provides specific exception types for:
- Image / video loading errors
- Model loading and inference errors
- Configuration and validation errors
- Registration failures (matching, homography estimation, transforms)
"""

import logging

logger = logging.getLogger(__name__)


class PoseRegException(Exception):
    """
    Base exception class for all posereg exceptions

    All custom exceptions inherit from this class so callers can catch
    every pipeline failure with a single except clause.
    """
    pass


class ImageLoadError(PoseRegException):
    """
    Raised when an image fails to load

    Reasons:
    - File does not exist
    - File format is corrupted or unsupported

    Example:
        >>> from posereg.core.exceptions import ImageLoadError
        >>> from posereg.io import ImageLoader
        >>> try:
        ...     img = ImageLoader.load("nonexistent.jpg")
        ... except ImageLoadError as e:
        ...     print(f"Failed to load image: {e}")
    """
    pass


class DataLoadError(PoseRegException):
    """
    Raised when a data file (video, session JSON) fails to load
    """
    pass


class ModelLoadError(PoseRegException):
    """
    Raised when the pose model fails to load

    Example:
        >>> from posereg.pose import MediaPipePoseDetector
        >>> try:
        ...     detector = MediaPipePoseDetector(PoseConfig(model_path="missing.task"))
        ... except ModelLoadError as e:
        ...     print(f"Failed to load model: {e}")
    """
    pass


class InferenceError(PoseRegException):
    """
    Raised when pose inference fails on a single image

    The extraction loop treats this as a missed frame, not a fatal error.
    """
    pass


class ConfigError(PoseRegException):
    """
    Raised when configuration is invalid or missing

    Reasons:
    - Configuration file not found
    - Invalid YAML format
    - Unknown configuration section
    """
    pass


class ValidationError(PoseRegException):
    """
    Raised when input data validation fails

    Applicable to:
    - Rect validation (non-positive size)
    - Keypoint / descriptor shape mismatches
    - Image validation (shape, dtype)
    """
    pass


class FeatureFileError(PoseRegException):
    """
    Raised when a features JSON document is malformed

    Example:
        >>> from posereg.features import import_features
        >>> try:
        ...     import_features({"type": "SIFT"})
        ... except FeatureFileError as e:
        ...     print(e)
    """
    pass


class SessionStateError(PoseRegException):
    """
    Raised when a PoseSession is used in the wrong lifecycle state

    Examples:
    - Appending a frame to a COMPLETE session
    - Registering a session that is still EXTRACTING
    """
    pass


class RegistrationError(PoseRegException):
    """
    Base class for failures of the registration step

    A registration failure aborts only that step; the underlying
    PoseSession stays valid and can be registered against another target.
    """
    pass


class InsufficientCorrespondences(RegistrationError):
    """
    Raised when fewer than 4 point correspondences are available
    for homography estimation
    """
    pass


class DegenerateGeometry(RegistrationError):
    """
    Raised when RANSAC finds no valid model

    Reasons:
    - All points collinear
    - No candidate reaches 4 inliers
    - Estimated matrix is singular or non-finite
    """
    pass


class EmptyDescriptorSet(RegistrationError):
    """
    Raised when registration is attempted with a feature set
    that has zero keypoints
    """
    pass


class InvalidTransform(RegistrationError):
    """
    Raised when a homography is non-invertible, non-finite or has
    the wrong shape at the point it is used
    """
    pass


def handle_exception(e: PoseRegException, verbose: bool = True) -> str:
    """
    Handle posereg exceptions with formatted error message

    Args:
        e: The PoseRegException instance
        verbose: If True, log the error message

    Returns:
        Formatted error message string
    """
    error_type = type(e).__name__
    error_msg = str(e)
    formatted_msg = f"[{error_type}] {error_msg}"

    if verbose:
        logger.error(formatted_msg)

    return formatted_msg

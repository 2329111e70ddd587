"""
Registration of a pose session onto a new image

Single-shot step run after extraction is complete:

    ORB features in reference image A and target image B
      -> ratio-test matches
      -> RANSAC homography (or affine) A -> B
      -> every landmark of the session mapped into B

The source session is never modified; a failed registration leaves it
valid for another attempt with a different target.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

import numpy as np

from ..core.config import PipelineConfig
from ..core.exceptions import EmptyDescriptorSet, RegistrationError
from ..features.matcher import FeatureMatcher, matches_to_correspondences
from ..features.orb import ORBDetector
from ..features.types import KeypointSet, Match
from ..geometry import Rect, full_array_to_normalized, normalized_array_to_full
from ..pose.landmarks import PoseSession
from ..registration.homography import HomographyEstimator, HomographyResult
from ..registration.transform import transform_session

logger = logging.getLogger(__name__)


@dataclass
class RegistrationResult:
    """
    Output of a successful registration

    Attributes:
        session: New session with landmarks in target image pixels
        homography: 3x3 matrix mapping reference pixels to target pixels
            (last row [0, 0, 1] when method is "affine")
        matches: Ratio-test matches, each marked inlier/outlier
        inlier_mask: Bool array parallel to matches
        num_inliers: Number of inlier matches
        method: Transform model that produced homography
    """
    session: PoseSession
    homography: np.ndarray
    matches: List[Match]
    inlier_mask: np.ndarray
    num_inliers: int
    method: str = "homography"
    source_features: Optional[KeypointSet] = field(default=None, repr=False)
    target_features: Optional[KeypointSet] = field(default=None, repr=False)


@dataclass
class RegistrationOutcome:
    """Result or error of try_register()"""
    result: Optional[RegistrationResult] = None
    error: Optional[RegistrationError] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def rescale_session(session: PoseSession, width: int, height: int) -> PoseSession:
    """
    Re-express landmarks of a session in an image of a different size

    Goes through normalized space: pixel / session size * new size.
    """
    if (width, height) == (session.frame_width, session.frame_height):
        return session

    frames = []
    for frame in session.frames:
        if frame.is_empty:
            frames.append(frame)
            continue
        normalized = full_array_to_normalized(
            frame.points(), session.frame_width, session.frame_height
        )
        frames.append(frame.with_points(normalized_array_to_full(normalized, width, height)))

    return PoseSession.completed(width, height, frames)


class Registrar:
    """
    Maps a complete PoseSession from its reference image onto a target image

    Example:
        >>> registrar = Registrar(PipelineConfig())
        >>> result = registrar.register(session, session.reference_image, target)
        >>> print(result.num_inliers, "inliers")
        >>> transformed = result.session
    """

    def __init__(self, config: Optional[PipelineConfig] = None, method: Optional[str] = None):
        self.config = config or PipelineConfig()
        if method is not None:
            # Copy so the caller's config keeps its own method
            self.config = replace(self.config, ransac=replace(self.config.ransac, method=method))
        self.detector = ORBDetector(self.config.orb)
        self.matcher = FeatureMatcher(self.config.matching)
        self.estimator = HomographyEstimator(self.config.ransac)

    @property
    def method(self) -> str:
        """Transform model used by register(): "homography" or "affine"."""
        return self.config.ransac.method

    def detect(self, image: np.ndarray, crop: Optional[Rect] = None) -> KeypointSet:
        """ORB features of image (optionally only inside crop), in full-image pixels"""
        return self.detector.detect_in_crop(image, crop)

    def register(
        self,
        session: PoseSession,
        reference_image: np.ndarray,
        target_image: np.ndarray,
        reference_crop: Optional[Rect] = None,
        target_crop: Optional[Rect] = None,
    ) -> RegistrationResult:
        """
        Detect features in both images and register the session

        Args:
            session: Complete session extracted from the reference video
            reference_image: Image A (usually session.reference_image)
            target_image: Image B
            reference_crop: Restrict detection in A to this window
            target_crop: Restrict detection in B to this window

        Returns:
            RegistrationResult

        Raises:
            SessionStateError: Session is not complete
            EmptyDescriptorSet: No features in either image
            InsufficientCorrespondences: Fewer than 4 matches (3 for affine)
            DegenerateGeometry: No valid transform
        """
        session.require_complete()
        source_features = self.detect(reference_image, reference_crop)
        target_features = self.detect(target_image, target_crop)
        return self.register_features(session, source_features, target_features)

    def register_features(
        self,
        session: PoseSession,
        source_features: KeypointSet,
        target_features: KeypointSet,
    ) -> RegistrationResult:
        """
        Register the session using precomputed features

        source_features may come from a saved features file; its image
        size defines the reference pixel space.
        """
        session.require_complete()

        if source_features.is_empty:
            raise EmptyDescriptorSet("Reference image has no features")
        if target_features.is_empty:
            raise EmptyDescriptorSet("Target image has no features")

        matches = self.matcher.match(source_features, target_features)
        logger.info("Matched %d of %d reference features", len(matches), len(source_features))

        src, dst = matches_to_correspondences(matches, source_features, target_features)
        homography: HomographyResult = self.estimator.estimate(src, dst)

        marked = [
            replace(m, inlier=bool(inlier))
            for m, inlier in zip(matches, homography.inlier_mask)
        ]
        logger.info(
            "%s transform found with %d/%d inliers",
            self.method.capitalize(), homography.num_inliers, len(matches),
        )

        reference = rescale_session(
            session, source_features.image_width, source_features.image_height
        )
        transformed = transform_session(
            reference,
            homography.matrix,
            target_features.image_width,
            target_features.image_height,
        )

        return RegistrationResult(
            session=transformed,
            homography=homography.matrix,
            matches=marked,
            inlier_mask=homography.inlier_mask,
            num_inliers=homography.num_inliers,
            method=self.method,
            source_features=source_features,
            target_features=target_features,
        )

    def try_register(self, session: PoseSession, *args, **kwargs) -> RegistrationOutcome:
        """
        register() that reports registration failures instead of raising

        Only RegistrationError is caught; other errors propagate.
        """
        try:
            return RegistrationOutcome(result=self.register(session, *args, **kwargs))
        except RegistrationError as e:
            logger.warning("Registration failed: [%s] %s", type(e).__name__, e)
            return RegistrationOutcome(error=e)

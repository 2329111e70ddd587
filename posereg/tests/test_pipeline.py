"""
Tests for pose extraction and session registration
"""

import numpy as np
import pytest

from posereg.tests.conftest import FakePoseDetector, make_landmarks, make_session


def _frames(n, width=200, height=100):
    return [(0.5 * i, np.full((height, width, 3), i, dtype=np.uint8)) for i in range(n)]


# ===== Extraction =====

def test_extraction_with_crop_tracking():
    from posereg.geometry import Rect
    from posereg.pipeline import PoseExtractor

    detector = FakePoseDetector([make_landmarks(0.7, 0.5), make_landmarks(0.5, 0.5), None])
    extractor = PoseExtractor(detector, initial_crop=Rect(10, 10, 50, 50))
    session = extractor.run(_frames(3))

    assert session.is_complete
    assert len(session) == 3
    assert detector.shapes == [(50, 50)] * 3

    first = session[0]
    assert first.crop_rect_used == Rect(10, 10, 50, 50)
    # Landmarks converted from crop-normalized to full pixels
    assert first.landmarks[23].x == pytest.approx(10 + 0.6 * 50)
    assert first.landmarks[23].y == pytest.approx(10 + 0.5 * 50)
    assert first.landmarks[0].name == "nose"

    # Hip midpoint at full x = 45, y = 35 -> crop recentered for frame 1
    assert session[1].crop_rect_used == Rect(20, 10, 50, 50)
    # Centered anchor keeps the crop for frame 2
    assert session[2].crop_rect_used == Rect(20, 10, 50, 50)
    print("✓ Crop follows the hips")


def test_missed_detection_gives_empty_frame_and_keeps_crop():
    from posereg.core.exceptions import InferenceError
    from posereg.geometry import Rect
    from posereg.pipeline import PoseExtractor

    detector = FakePoseDetector([None, InferenceError("boom"), make_landmarks(0.5, 0.5)])
    extractor = PoseExtractor(detector, initial_crop=Rect(30, 20, 40, 40))
    session = extractor.run(_frames(3))

    assert session[0].is_empty
    assert session[1].is_empty
    assert not session[2].is_empty
    assert {f.crop_rect_used for f in session} == {Rect(30, 20, 40, 40)}
    assert session.num_detected() == 1
    assert np.isnan(session.landmark_array()[0]).all()


def test_extraction_without_crop_uses_full_frame():
    from posereg.pipeline import PoseExtractor

    detector = FakePoseDetector([make_landmarks(0.5, 0.5)] * 2)
    session = PoseExtractor(detector).run(_frames(2))

    assert detector.shapes == [(100, 200)] * 2
    assert all(f.crop_rect_used is None for f in session)
    assert session[0].landmarks[23].x == pytest.approx(0.4 * 200)


def test_extraction_keeps_first_frame_as_reference():
    from posereg.pipeline import PoseExtractor

    frames = _frames(3)
    session = PoseExtractor(FakePoseDetector([])).run(frames)
    np.testing.assert_array_equal(session.reference_image, frames[0][1])
    assert (session.frame_width, session.frame_height) == (200, 100)


def test_extraction_cancel_between_frames():
    from posereg.pipeline import PoseExtractor

    calls = []

    def should_cancel():
        calls.append(1)
        return len(calls) > 2

    session = PoseExtractor(FakePoseDetector([])).run(_frames(5), should_cancel=should_cancel)
    assert session.is_complete
    assert len(session) == 2
    print("✓ Cancellation completes with frames so far")


def test_extraction_state_machine():
    from posereg.core.exceptions import SessionStateError, ValidationError
    from posereg.pipeline import PoseExtractor
    from posereg.pose.landmarks import PoseFrame, SessionState

    extractor = PoseExtractor(FakePoseDetector([]))
    with pytest.raises(SessionStateError):
        extractor.finish()

    session = extractor.start(200, 100)
    assert session.state is SessionState.EXTRACTING
    with pytest.raises(SessionStateError):
        extractor.start(200, 100)
    with pytest.raises(ValidationError):
        extractor.process_frame(0.0, np.zeros((10, 10, 3), dtype=np.uint8))

    extractor.process_frame(0.0, np.zeros((100, 200, 3), dtype=np.uint8))
    extractor.finish()
    assert session.state is SessionState.COMPLETE

    with pytest.raises(SessionStateError):
        session.append(PoseFrame(1, 0.5))
    with pytest.raises(SessionStateError):
        extractor.process_frame(0.5, np.zeros((100, 200, 3), dtype=np.uint8))

    # Extractor can run again after completion
    assert len(extractor.run(_frames(2))) == 2


# ===== Registration =====

def _synthetic_features(h, n=80, seed=0):
    from posereg.features import keypoints_from_arrays

    rng = np.random.default_rng(seed)
    src = rng.uniform([10, 10], [630, 470], size=(n, 2))
    homogeneous = np.hstack([src, np.ones((n, 1))]) @ h.T
    dst = homogeneous[:, :2] / homogeneous[:, 2:]
    descriptors = rng.integers(0, 256, size=(n, 32), dtype=np.uint8)

    order = rng.permutation(n)
    source = keypoints_from_arrays(src, descriptors, 640, 480)
    target = keypoints_from_arrays(dst[order], descriptors[order], 640, 480)
    return source, target


H_SHIFT = np.array([[1.0, 0.02, 25.0], [-0.01, 1.0, -15.0], [0.0, 0.0, 1.0]])


def test_register_features_maps_session(session):
    from posereg.pipeline import Registrar
    from posereg.registration import apply_homography

    source, target = _synthetic_features(H_SHIFT)
    before = session.landmark_array().copy()

    result = Registrar().register_features(session, source, target)

    np.testing.assert_allclose(result.homography, H_SHIFT, atol=1e-6)
    assert result.num_inliers == len(result.matches) == 80
    assert result.inlier_mask.shape == (len(result.matches),)
    assert all(m.inlier for m in result.matches)

    expected = apply_homography(before[0], H_SHIFT)
    np.testing.assert_allclose(result.session.landmark_array()[0], expected, atol=1e-6)
    # Original session untouched
    np.testing.assert_array_equal(session.landmark_array(), before)
    print(f"✓ Registered session with {result.num_inliers} inliers")


def test_register_rescales_when_reference_size_differs():
    from posereg.pipeline import Registrar

    session = make_session(frame_width=320, frame_height=240)
    source, target = _synthetic_features(np.eye(3))
    result = Registrar().register_features(session, source, target)

    # Session is half the size of the reference image -> landmarks doubled
    np.testing.assert_allclose(
        result.session.landmark_array(), session.landmark_array() * 2, atol=1e-6
    )
    assert (result.session.frame_width, result.session.frame_height) == (640, 480)


A_SHEAR = np.array([[1.1, 0.15, 30.0], [-0.08, 0.95, -12.0], [0.0, 0.0, 1.0]])


def test_register_features_with_affine_method(session):
    from posereg.core.config import PipelineConfig
    from posereg.pipeline import Registrar
    from posereg.registration import apply_homography

    config = PipelineConfig()
    registrar = Registrar(config, method="affine")
    assert registrar.method == "affine"
    # Caller's config is not changed
    assert config.ransac.method == "homography"

    source, target = _synthetic_features(A_SHEAR)
    result = registrar.register_features(session, source, target)

    assert result.method == "affine"
    np.testing.assert_allclose(result.homography, A_SHEAR, atol=1e-3)
    np.testing.assert_array_equal(result.homography[2], [0.0, 0.0, 1.0])
    expected = apply_homography(session.landmark_array()[0], A_SHEAR)
    np.testing.assert_allclose(result.session.landmark_array()[0], expected, atol=0.1)

    # Three matches are enough for an affine map
    few_source, few_target = _synthetic_features(A_SHEAR, n=3)
    few = Registrar(method="affine").register_features(session, few_source, few_target)
    assert few.num_inliers == 3
    print(f"✓ Affine registration with {result.num_inliers} inliers")


def test_register_errors():
    from posereg.core.exceptions import (
        EmptyDescriptorSet,
        InsufficientCorrespondences,
        SessionStateError,
    )
    from posereg.features import KeypointSet
    from posereg.pipeline import Registrar
    from posereg.pose.landmarks import PoseSession

    registrar = Registrar()
    session = make_session()
    source, target = _synthetic_features(np.eye(3))

    with pytest.raises(EmptyDescriptorSet):
        registrar.register_features(session, KeypointSet.empty(640, 480), target)
    with pytest.raises(EmptyDescriptorSet):
        registrar.register_features(session, source, KeypointSet.empty(640, 480))

    few_source, few_target = _synthetic_features(np.eye(3), n=3)
    with pytest.raises(InsufficientCorrespondences):
        registrar.register_features(session, few_source, few_target)

    incomplete = PoseSession(640, 480)
    with pytest.raises(SessionStateError):
        registrar.register_features(incomplete, source, target)


def test_try_register_reports_failure_and_session_stays_usable(texture):
    from posereg.core.exceptions import EmptyDescriptorSet
    from posereg.pipeline import Registrar

    session = make_session()
    registrar = Registrar()
    blank = np.zeros_like(texture)

    outcome = registrar.try_register(session, texture, blank)
    assert not outcome.ok
    assert isinstance(outcome.error, EmptyDescriptorSet)

    # Same session, another target
    retry = registrar.try_register(session, texture, texture.copy())
    assert retry.ok
    np.testing.assert_allclose(retry.result.homography, np.eye(3), atol=1e-2)


class _BrightestPixelDetector:
    """Puts every landmark on the brightest pixel of the image it is given"""

    def detect(self, image):
        from posereg.pose.landmarks import DetectedLandmark

        gray = image[..., 0]
        row, col = np.unravel_index(np.argmax(gray), gray.shape)
        x, y = col / gray.shape[1], row / gray.shape[0]
        return [DetectedLandmark(x, y, 0.0, 1.0) for _ in range(33)]


@pytest.mark.parametrize("round_to_pixel", [True, False])
def test_fractional_crop_maps_landmarks_to_the_right_pixel(round_to_pixel):
    from posereg.core.config import PipelineConfig
    from posereg.geometry import Rect
    from posereg.pipeline import PoseExtractor

    image = np.zeros((480, 640, 3), dtype=np.uint8)
    image[250, 300] = 255

    config = PipelineConfig()
    config.tracking.round_to_pixel = round_to_pixel
    extractor = PoseExtractor(
        _BrightestPixelDetector(), config, initial_crop=Rect(100.5, 100.5, 300.6, 300.6)
    )
    session = extractor.run([(0.0, image), (0.5, image), (1.0, image)])

    for frame in session:
        assert frame.landmarks[0].x == pytest.approx(300.0)
        assert frame.landmarks[0].y == pytest.approx(250.0)
        crop = frame.crop_rect_used
        assert crop == crop.to_pixel_grid()
    print("✓ Fractional crop keeps landmarks on the marker")

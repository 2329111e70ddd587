"""
Integration tests for the posereg package

Tests:
- Package exports
- Extraction -> registration onto a warped image
- Registration through saved feature files
"""

import numpy as np

from posereg.tests.conftest import FakePoseDetector, make_landmarks, make_texture

# Small rotation + translation + mild perspective
H_WARP = np.array([
    [0.97, -0.05, 18.0],
    [0.04, 0.99, -10.0],
    [1e-5, 2e-5, 1.0],
])


def _warp(image, h):
    import cv2

    return cv2.warpPerspective(image, h, (image.shape[1], image.shape[0]))


def test_package_exports():
    """Top-level names resolve (lazy ones included)"""
    import posereg

    assert posereg.__version__
    for name in ("Registrar", "PoseExtractor", "ORBDetector", "estimate_homography",
                 "apply_homography", "interpolate_session", "PipelineConfig",
                 "RegistrationError"):
        assert getattr(posereg, name) is not None
    print("✓ Package exports")


def test_extract_then_register_onto_warped_image():
    """End-to-end: landmarks from the reference video land on the warped target"""
    from posereg.geometry import Rect
    from posereg.pipeline import PoseExtractor, Registrar
    from posereg.registration import apply_homography

    reference = make_texture(seed=3)
    frames = [(0.5 * i, reference) for i in range(4)]
    detector = FakePoseDetector([make_landmarks(0.5 + 0.02 * i, 0.6) for i in range(4)])

    session = PoseExtractor(detector, initial_crop=Rect(160, 80, 320, 320)).run(frames)
    assert session.num_detected() == 4
    np.testing.assert_array_equal(session.reference_image, reference)

    target = _warp(reference, H_WARP)
    result = Registrar().register(session, session.reference_image, target)

    assert result.num_inliers >= 20
    expected = np.stack([apply_homography(f.points(), H_WARP) for f in session])
    error = np.linalg.norm(result.session.landmark_array() - expected, axis=2)
    assert np.nanmax(error) < 3.0
    print(f"✓ Registered {len(session)} frames, max landmark error {np.nanmax(error):.2f}px")


def test_register_with_saved_features(tmp_path):
    """Reference features saved to JSON give the same mapping"""
    from posereg.features import ORBDetector, load_features, save_features
    from posereg.pipeline import Registrar
    from posereg.registration import apply_homography
    from posereg.tests.conftest import make_session

    reference = make_texture(seed=5)
    target = _warp(reference, H_WARP)

    path = save_features(tmp_path / "features.json", ORBDetector().detect(reference))
    registrar = Registrar()
    result = registrar.register_features(
        make_session(), load_features(path), registrar.detect(target)
    )

    corners = np.array([[100.0, 100.0], [540.0, 100.0], [540.0, 380.0], [100.0, 380.0]])
    error = np.linalg.norm(
        apply_homography(corners, result.homography) - apply_homography(corners, H_WARP), axis=1
    )
    assert error.max() < 3.0
    assert result.num_inliers == int(result.inlier_mask.sum())
    print("✓ Registration from saved features")

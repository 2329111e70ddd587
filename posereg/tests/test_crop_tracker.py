"""
Tests for the hip-anchored crop tracker
"""

import itertools

import pytest


def test_recenter_none_keeps_crop():
    from posereg.geometry import Rect
    from posereg.tracking import CropTracker

    crop = Rect(100, 100, 200, 200)
    tracker = CropTracker(crop)
    assert tracker.recenter(None, 1920, 1080) == crop
    assert tracker.current_crop == crop
    assert tracker.misses == 1
    assert tracker.updates == 0
    print("✓ Missing anchor keeps crop")


def test_recenter_centered_anchor_is_stable():
    from posereg.geometry import NormalizedPoint, Rect
    from posereg.tracking import CropTracker

    crop = Rect(100, 100, 200, 200)
    tracker = CropTracker(crop)
    assert tracker.recenter(NormalizedPoint(0.5, 0.5), 1920, 1080) == crop
    print("✓ Centered anchor leaves crop unchanged")


def test_recenter_moves_window_keeping_size():
    from posereg.geometry import NormalizedPoint, Rect
    from posereg.tracking import CropTracker

    tracker = CropTracker(Rect(100, 100, 200, 200))
    new_crop = tracker.recenter(NormalizedPoint(0.75, 0.25), 1920, 1080)
    # anchor at (250, 150) in full pixels
    assert new_crop == Rect(150, 50, 200, 200)

    # Second step is relative to the moved window
    new_crop = tracker.recenter(NormalizedPoint(0.5, 1.0), 1920, 1080)
    assert new_crop == Rect(150, 150, 200, 200)
    assert len(tracker.history) == 3


def test_recenter_rounds_half_up():
    from posereg.core.config import TrackingConfig
    from posereg.geometry import NormalizedPoint, Rect
    from posereg.tracking import CropTracker

    tracker = CropTracker(Rect(100, 100, 256, 256))
    # full.x = 100 + 0.501953125 * 256 = 228.5 -> x = 100.5 -> 101
    assert tracker.recenter(NormalizedPoint(0.501953125, 0.5), 1920, 1080).x == 101

    unrounded = CropTracker(Rect(100, 100, 256, 256), TrackingConfig(round_to_pixel=False))
    assert unrounded.recenter(NormalizedPoint(0.501953125, 0.5), 1920, 1080).x == pytest.approx(100.5)


def test_recenter_clamp_invariant():
    from posereg.geometry import NormalizedPoint, Rect
    from posereg.tracking import CropTracker

    frame_w, frame_h = 1920, 1080
    values = [-2.0, -0.5, 0.0, 0.001, 0.25, 0.5, 0.75, 0.999, 1.0, 1.5, 3.0]
    crops = [
        Rect(0, 0, 200, 200),
        Rect(1720, 880, 200, 200),
        Rect(500, 300, 640, 480),
        Rect(0, 0, 1920, 1080),
    ]

    for crop in crops:
        tracker = CropTracker(crop)
        for ax, ay in itertools.product(values, values):
            new_crop = tracker.recenter(NormalizedPoint(ax, ay), frame_w, frame_h)
            assert 0 <= new_crop.x
            assert new_crop.x + new_crop.width <= frame_w
            assert 0 <= new_crop.y
            assert new_crop.y + new_crop.height <= frame_h
            assert (new_crop.width, new_crop.height) == (crop.width, crop.height)
    print("✓ Crop stays inside the frame for all anchors")


def test_fit_to_frame_shrinks_oversized_crop():
    from posereg.geometry import Rect
    from posereg.tracking import CropTracker

    tracker = CropTracker(Rect(-10, 50, 800, 300))
    fitted = tracker.fit_to_frame(640, 480)
    assert fitted == Rect(0, 50, 640, 300)
    assert tracker.history == [fitted]

    tracker.reset()
    assert tracker.current_crop == Rect(-10, 50, 800, 300)


def test_hip_anchor():
    from posereg.core.config import TrackingConfig
    from posereg.geometry import NormalizedPoint
    from posereg.pose.landmarks import DetectedLandmark
    from posereg.tests.conftest import make_landmarks
    from posereg.tracking import hip_anchor

    anchor = hip_anchor(make_landmarks(0.5, 0.6))
    assert anchor.x == pytest.approx(0.5)
    assert anchor.y == pytest.approx(0.6)
    assert isinstance(anchor, NormalizedPoint)

    assert hip_anchor(None) is None
    assert hip_anchor([]) is None
    assert hip_anchor([DetectedLandmark(0.1, 0.1)] * 10) is None

    low = make_landmarks()
    low[24] = DetectedLandmark(0.6, 0.6, 0.0, 0.2)
    assert hip_anchor(low) is not None
    assert hip_anchor(low, TrackingConfig(min_anchor_visibility=0.5)) is None
    print("✓ Hip anchor")


def test_fit_to_frame_snaps_to_pixel_grid():
    from posereg.geometry import Rect
    from posereg.tracking import CropTracker

    tracker = CropTracker(Rect(100.5, 100.5, 300.6, 300.6))
    assert tracker.fit_to_frame(640, 480) == Rect(101, 101, 300, 300)


def test_recenter_without_fit_still_clamps():
    from posereg.geometry import NormalizedPoint, Rect
    from posereg.tracking import CropTracker

    tracker = CropTracker(Rect(0, 0, 800, 300))
    new_crop = tracker.recenter(NormalizedPoint(0.9, 0.5), 640, 480)
    assert new_crop.x >= 0
    assert new_crop.x + new_crop.width <= 640
    assert new_crop.y + new_crop.height <= 480


def test_recenter_non_finite_anchor_counts_as_missing():
    from posereg.geometry import NormalizedPoint, Rect
    from posereg.tracking import CropTracker

    crop = Rect(100, 100, 200, 200)
    tracker = CropTracker(crop)
    assert tracker.recenter(NormalizedPoint(float('nan'), 0.5), 1920, 1080) == crop
    assert tracker.recenter(NormalizedPoint(0.5, float('inf')), 1920, 1080) == crop
    assert tracker.misses == 2
    assert tracker.updates == 0

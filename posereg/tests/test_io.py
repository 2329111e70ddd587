"""
Tests for image/video loading and session persistence
"""

import csv
import json

import numpy as np
import pytest


# ===== Images and video =====

def test_image_loader(tmp_path, texture):
    import cv2
    from posereg.core.exceptions import ImageLoadError
    from posereg.io import ImageLoader

    with pytest.raises(ImageLoadError):
        ImageLoader.load(str(tmp_path / "missing.png"))

    broken = tmp_path / "broken.png"
    broken.write_bytes(b"not an image")
    with pytest.raises(ImageLoadError):
        ImageLoader.load(str(broken))

    path = tmp_path / "texture.png"
    cv2.imwrite(str(path), texture)
    np.testing.assert_array_equal(ImageLoader.load(str(path)), texture)
    assert ImageLoader.load(str(path), color_space='rgb').shape == texture.shape

    assert ImageLoader.validate_format("a.JPG")
    assert not ImageLoader.validate_format("a.txt")


def test_video_missing_file(tmp_path):
    from posereg.core.exceptions import DataLoadError
    from posereg.io import VideoFrameExtractor

    with pytest.raises(DataLoadError):
        VideoFrameExtractor(str(tmp_path / "missing.mp4"))


def test_video_sampling(tmp_path):
    import cv2
    from posereg.io import VideoFrameExtractor

    path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
    if not writer.isOpened():
        pytest.skip("MJPG writer not available")
    for i in range(10):
        writer.write(np.full((48, 64, 3), i * 20, dtype=np.uint8))
    writer.release()

    with VideoFrameExtractor(str(path)) as video:
        assert video.frame_size == (64, 48)
        assert video.duration == pytest.approx(1.0)
        assert video.num_samples(0.25) == 4
        samples = list(video.iter_frames(0.25))

        with pytest.raises(ValueError):
            next(video.iter_frames(0))

    assert [t for t, _ in samples] == [0.0, 0.25, 0.5, 0.75]
    assert all(frame.shape == (48, 64, 3) for _, frame in samples)
    print(f"✓ Sampled {len(samples)} frames")


# ===== Session persistence =====

def test_session_json_round_trip(tmp_path, session):
    from posereg.io import load_session, save_session

    path = save_session(tmp_path / "out" / "session.json", session)
    loaded = load_session(path)

    assert loaded.is_complete
    assert (loaded.frame_width, loaded.frame_height) == (640, 480)
    assert [f.timestamp_seconds for f in loaded] == [f.timestamp_seconds for f in session]
    assert [f.crop_rect_used for f in loaded] == [f.crop_rect_used for f in session]
    np.testing.assert_allclose(loaded.landmark_array(), session.landmark_array())
    assert loaded[0].landmarks[23].name == "left_hip"


def test_session_json_nan_written_as_null(tmp_path):
    from posereg.io import load_session, save_session
    from posereg.pose.landmarks import PoseSession
    from posereg.tests.conftest import make_session

    frame = make_session(num_frames=1)[0]
    points = frame.points()
    points[0] = np.nan
    session = PoseSession.completed(640, 480, [frame.with_points(points)])

    path = save_session(tmp_path / "session.json", session)
    data = json.loads(path.read_text())
    first = data['frames'][0]['landmarks'][0]
    assert first['x'] is None and first['y'] is None
    assert data['frames'][0]['landmarks'][1]['x'] is not None

    loaded = load_session(path)
    assert np.isnan(loaded[0].points()[0]).all()
    assert np.isfinite(loaded[0].points()[1:]).all()


def test_session_empty_frames_round_trip(tmp_path):
    from posereg.io import load_session, save_session
    from posereg.tests.conftest import make_session

    session = make_session(num_frames=3, empty_indices=(1,))
    loaded = load_session(save_session(tmp_path / "s.json", session))
    assert loaded[1].is_empty
    assert loaded.num_detected() == 2


def test_session_load_errors(tmp_path):
    from posereg.core.exceptions import DataLoadError
    from posereg.io import load_session, session_from_dict

    with pytest.raises(DataLoadError):
        load_session(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(DataLoadError):
        load_session(bad)

    with pytest.raises(DataLoadError):
        session_from_dict({'version': 99, 'frame_width': 1, 'frame_height': 1, 'frames': []})
    with pytest.raises(DataLoadError):
        session_from_dict([])


def test_session_csv(tmp_path):
    from posereg.core.constants import CSV_SESSION_COLUMNS
    from posereg.io import write_session_csv
    from posereg.tests.conftest import make_session

    session = make_session(num_frames=2, empty_indices=(1,))
    path = write_session_csv(tmp_path / "session.csv", session)

    with open(path, newline='') as f:
        reader = csv.DictReader(f)
        assert reader.fieldnames == CSV_SESSION_COLUMNS
        rows = list(reader)

    assert len(rows) == 2
    assert float(rows[0]['left_hip_x']) == pytest.approx(session[0].landmarks[23].x)
    assert float(rows[0]['crop_width']) == pytest.approx(400)
    assert rows[1]['left_hip_x'] == ''
    assert rows[1]['frame'] == '1'

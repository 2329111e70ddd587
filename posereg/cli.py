"""
Command-line entry points

Usage:
    posereg extract clip.mp4 --crop 600,200,480,640 --output results/session.json
    posereg features reference.png --crop 0,0,960,1080 --output results/features.json
    posereg register results/session.json --features results/features.json \
        --target target.jpg --output results/registered.json --render-dir results/frames
    posereg interpolate results/session.json --fps 24 --output results/dense.json
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .core.config import PipelineConfig
from .core.constants import TRANSFORM_METHODS
from .core.exceptions import PoseRegException, ValidationError, handle_exception
from .core.logging_config import setup_logging
from .geometry import Rect

logger = logging.getLogger(__name__)


def parse_rect(value: str) -> Rect:
    """Parse 'x,y,width,height' into a Rect snapped to whole pixels"""
    try:
        x, y, w, h = (float(v) for v in value.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected x,y,width,height, got {value!r}")
    try:
        return Rect(x, y, w, h).to_pixel_grid()
    except ValidationError as e:
        raise argparse.ArgumentTypeError(str(e))


def _load_config(args: argparse.Namespace) -> PipelineConfig:
    config = PipelineConfig.from_yaml(args.config) if args.config else PipelineConfig()
    return PipelineConfig.from_env(config)


def _output_path(args: argparse.Namespace, config: PipelineConfig, default_name: str) -> Path:
    """--output if given, else default_name under the configured output root"""
    if args.output:
        return Path(args.output)
    return config.paths.get_output_path(default_name)


def _log_path(args: argparse.Namespace, config: PipelineConfig) -> Optional[Path]:
    """--log-file resolved against the configured log root (absolute paths kept)"""
    if not args.log_file:
        return None
    return config.paths.get_log_path(args.log_file)


# ===== Sub-commands =====

def cmd_extract(args: argparse.Namespace, config: PipelineConfig) -> int:
    import cv2
    from .io import VideoFrameExtractor, save_session, write_session_csv
    from .pipeline import PoseExtractor
    from .pose import get_pose_detector

    output = _output_path(args, config, "session.json")
    if args.model:
        config.pose.model_path = args.model
    interval = args.interval or config.pose.interval_seconds

    detector = get_pose_detector(config.pose)
    extractor = PoseExtractor(detector, config, initial_crop=args.crop)

    with VideoFrameExtractor(args.video) as video:
        logger.info("Video %s: %dx%d, %.2fs", args.video, video.width, video.height, video.duration)
        session = extractor.run(
            video.iter_frames(interval),
            show_progress=not args.no_progress,
            total=video.num_samples(interval),
        )

    save_session(output, session)
    if args.csv:
        write_session_csv(args.csv, session)
    if args.reference_image and session.reference_image is not None:
        Path(args.reference_image).parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(args.reference_image), session.reference_image)
        logger.info("Saved reference frame to %s", args.reference_image)

    print(f"✓ {len(session)} frames ({session.num_detected()} with a pose) -> {output}")
    return 0


def cmd_features(args: argparse.Namespace, config: PipelineConfig) -> int:
    import cv2
    from .features import ORBDetector, save_features
    from .io import ImageLoader
    from .visualization import draw_crop_rect, draw_keypoints

    output = _output_path(args, config, "features.json")
    image = ImageLoader.load(args.image)
    features = ORBDetector(config.orb).detect_in_crop(image, args.crop)
    save_features(output, features)

    if args.draw:
        canvas = draw_keypoints(image.copy(), features)
        canvas = draw_crop_rect(canvas, args.crop)
        Path(args.draw).parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(args.draw), canvas)

    print(f"✓ {len(features)} features -> {output}")
    return 0


def cmd_register(args: argparse.Namespace, config: PipelineConfig) -> int:
    import cv2
    from .features import load_features
    from .io import ImageLoader, load_session, save_session
    from .pipeline import Registrar
    from .visualization import add_text_label, draw_matches, draw_pose

    if not args.reference and not args.features:
        raise ValidationError("Either --reference or --features is required")

    output = _output_path(args, config, "registered.json")
    session = load_session(args.session)
    target = ImageLoader.load(args.target)
    registrar = Registrar(config, method=args.method)

    if args.features:
        source_features = load_features(args.features)
        reference = None
    else:
        reference = ImageLoader.load(args.reference)
        source_features = registrar.detect(reference, args.reference_crop)
    target_features = registrar.detect(target, args.target_crop)

    result = registrar.register_features(session, source_features, target_features)
    save_session(output, result.session)

    if args.render_dir:
        out_dir = Path(args.render_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        for frame in result.session.frames:
            canvas = draw_pose(target.copy(), frame.landmarks)
            canvas = add_text_label(canvas, f"t={frame.timestamp_seconds:.2f}s")
            cv2.imwrite(str(out_dir / f"frame_{frame.frame_index:05d}.png"), canvas)
        if reference is not None:
            canvas = draw_matches(reference, source_features, target, target_features,
                                  result.matches)
            cv2.imwrite(str(out_dir / "matches.png"), canvas)

    print(f"✓ {result.method}: {result.num_inliers}/{len(result.matches)} inlier matches -> {output}")
    return 0


def cmd_interpolate(args: argparse.Namespace, config: PipelineConfig) -> int:
    from .io import load_session, save_session
    from .tracking import get_interpolation_stats, interpolate_session

    output = _output_path(args, config, "interpolated.json")
    session = load_session(args.session)
    dense = interpolate_session(session, output_fps=args.fps, max_gap_seconds=args.max_gap)
    save_session(output, dense)

    stats = get_interpolation_stats(session, dense)
    print(f"✓ {stats['num_original']} -> {stats['num_interpolated']} frames -> {output}")
    return 0


# ===== Parser =====

def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=str, default=None,
                        help="YAML configuration file")
    parser.add_argument("--log-level", type=str, default="INFO",
                        help="Logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--log-file", type=str, default=None,
                        help="Also write logs to this file, relative to the log root")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="posereg",
        description="Pose sequence extraction and registration onto new images",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("extract", help="Extract a pose session from a video")
    p.add_argument("video", type=str, help="Input video file")
    p.add_argument("--output", type=str, default=None,
                   help="Session JSON output (default: <output_root>/session.json)")
    p.add_argument("--crop", type=parse_rect, default=None,
                   help="Initial crop window x,y,width,height (full frame if omitted)")
    p.add_argument("--interval", type=float, default=None,
                   help="Sampling interval in seconds (default from config)")
    p.add_argument("--model", type=str, default=None,
                   help="MediaPipe pose landmarker .task file")
    p.add_argument("--csv", type=str, default=None,
                   help="Also write a per-frame CSV")
    p.add_argument("--reference-image", type=str, default=None,
                   help="Save the first frame (registration reference) here")
    p.add_argument("--no-progress", action="store_true",
                   help="Disable the progress bar")
    _add_common(p)
    p.set_defaults(func=cmd_extract)

    p = sub.add_parser("features", help="Detect ORB features and save them as JSON")
    p.add_argument("image", type=str, help="Input image")
    p.add_argument("--crop", type=parse_rect, default=None,
                   help="Detect only inside x,y,width,height")
    p.add_argument("--output", type=str, default=None,
                   help="Features JSON output (default: <output_root>/features.json)")
    p.add_argument("--draw", type=str, default=None,
                   help="Save an image with the keypoints drawn")
    _add_common(p)
    p.set_defaults(func=cmd_features)

    p = sub.add_parser("register", help="Map a session onto a target image")
    p.add_argument("session", type=str, help="Session JSON from 'extract'")
    p.add_argument("--target", type=str, required=True, help="Target image")
    p.add_argument("--reference", type=str, default=None,
                   help="Reference image (first video frame)")
    p.add_argument("--features", type=str, default=None,
                   help="Reference features JSON (instead of --reference)")
    p.add_argument("--reference-crop", type=parse_rect, default=None,
                   help="Detect reference features only inside x,y,width,height")
    p.add_argument("--target-crop", type=parse_rect, default=None,
                   help="Detect target features only inside x,y,width,height")
    p.add_argument("--method", type=str, default=None, choices=TRANSFORM_METHODS,
                   help="Transform model (default from config: ransac.method)")
    p.add_argument("--output", type=str, default=None,
                   help="Registered session JSON output (default: <output_root>/registered.json)")
    p.add_argument("--render-dir", type=str, default=None,
                   help="Directory for rendered frames")
    _add_common(p)
    p.set_defaults(func=cmd_register)

    p = sub.add_parser("interpolate", help="Densify a session by linear interpolation")
    p.add_argument("session", type=str, help="Session JSON")
    p.add_argument("--fps", type=float, default=24.0, help="Output frame rate")
    p.add_argument("--max-gap", type=float, default=None,
                   help="Do not fill gaps longer than this many seconds")
    p.add_argument("--output", type=str, default=None,
                   help="Interpolated session JSON output (default: <output_root>/interpolated.json)")
    _add_common(p)
    p.set_defaults(func=cmd_interpolate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
    except PoseRegException as e:
        setup_logging(args.log_level)
        handle_exception(e)
        return 1
    setup_logging(args.log_level, _log_path(args, config))

    try:
        return args.func(args, config)
    except PoseRegException as e:
        handle_exception(e)
        return 1


def _run(command: str) -> int:
    return main([command] + sys.argv[1:])


def extract_main() -> int:
    return _run("extract")


def features_main() -> int:
    return _run("features")


def register_main() -> int:
    return _run("register")


def interpolate_main() -> int:
    return _run("interpolate")


if __name__ == "__main__":
    sys.exit(main())

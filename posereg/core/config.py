"""
Configuration management for the posereg pipeline

Central configuration system supporting:
- Dataclass-based configs
- YAML file loading
- Environment variable substitution
- Runtime modification
"""

import os
import yaml
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any

from .constants import (
    DEFAULT_RATIO,
    DEFAULT_REPROJECTION_THRESHOLD,
    LEFT_HIP_INDEX,
    ORB_DEFAULT_EDGE_THRESHOLD,
    ORB_DEFAULT_FAST_THRESHOLD,
    ORB_DEFAULT_LEVELS,
    ORB_DEFAULT_MAX_FEATURES,
    ORB_DEFAULT_PATCH_SIZE,
    ORB_DEFAULT_SCALE_FACTOR,
    POSE_BACKENDS,
    RIGHT_HIP_INDEX,
    TRANSFORM_METHODS,
)
from .exceptions import ConfigError


@dataclass
class OrbConfig:
    """Configuration for ORB keypoint detection"""
    max_features: int = ORB_DEFAULT_MAX_FEATURES
    scale_factor: float = ORB_DEFAULT_SCALE_FACTOR
    levels: int = ORB_DEFAULT_LEVELS
    edge_threshold: int = ORB_DEFAULT_EDGE_THRESHOLD
    first_level: int = 0
    wta_k: int = 2
    score_type: str = "harris"  # harris, fast
    patch_size: int = ORB_DEFAULT_PATCH_SIZE
    fast_threshold: int = ORB_DEFAULT_FAST_THRESHOLD

    def __post_init__(self):
        """Validate configuration"""
        if self.max_features < 1:
            raise ValueError("max_features must be >= 1")
        if self.scale_factor <= 1.0:
            raise ValueError("scale_factor must be > 1")
        if self.levels < 1:
            raise ValueError("levels must be >= 1")
        if self.score_type not in ("harris", "fast"):
            raise ValueError("score_type must be one of ['harris', 'fast']")


@dataclass
class MatchConfig:
    """Configuration for descriptor matching"""
    ratio: float = DEFAULT_RATIO
    backend: str = "numpy"  # numpy, opencv

    def __post_init__(self):
        """Validate configuration"""
        if self.ratio <= 0 or self.ratio > 1:
            raise ValueError("ratio must be in (0, 1]")
        if self.backend not in ("numpy", "opencv"):
            raise ValueError("backend must be one of ['numpy', 'opencv']")


@dataclass
class RansacConfig:
    """Configuration for RANSAC transform estimation"""
    method: str = "homography"  # homography, affine
    reprojection_threshold: float = DEFAULT_REPROJECTION_THRESHOLD
    max_iterations: int = 2000
    confidence: float = 0.995
    seed: int = 0
    refine: bool = True
    backend: str = "numpy"  # numpy, opencv

    def __post_init__(self):
        """Validate configuration"""
        if self.reprojection_threshold <= 0:
            raise ValueError("reprojection_threshold must be > 0")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be >= 1")
        if self.method not in TRANSFORM_METHODS:
            raise ValueError(f"method must be one of {list(TRANSFORM_METHODS)}")
        if self.confidence <= 0 or self.confidence >= 1:
            raise ValueError("confidence must be between 0 and 1")
        if self.backend not in ("numpy", "opencv"):
            raise ValueError("backend must be one of ['numpy', 'opencv']")


@dataclass
class TrackingConfig:
    """Configuration for hip-anchored crop tracking"""
    left_anchor_index: int = LEFT_HIP_INDEX
    right_anchor_index: int = RIGHT_HIP_INDEX
    min_anchor_visibility: float = 0.0
    round_to_pixel: bool = True

    def __post_init__(self):
        """Validate configuration"""
        if self.min_anchor_visibility < 0 or self.min_anchor_visibility > 1:
            raise ValueError("min_anchor_visibility must be between 0 and 1")


@dataclass
class PoseConfig:
    """Configuration for pose landmark detection"""
    model_path: str = "pose_landmarker_lite.task"
    model_type: str = "mediapipe"
    num_poses: int = 1
    min_detection_confidence: float = 0.5
    interval_seconds: float = 0.5

    def __post_init__(self):
        """Validate configuration"""
        if self.model_type not in POSE_BACKENDS:
            raise ValueError(f"model_type must be one of {list(POSE_BACKENDS)}")
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        if self.min_detection_confidence < 0 or self.min_detection_confidence > 1:
            raise ValueError("min_detection_confidence must be between 0 and 1")


@dataclass
class PathConfig:
    """Configuration for data paths with environment variable support"""
    output_root: str = "${POSEREG_OUTPUT_ROOT:./results}"
    log_root: str = "${POSEREG_LOG_ROOT:./log}"

    def resolve(self) -> None:
        """Resolve environment variables in paths"""
        for field_name in ['output_root', 'log_root']:
            value = getattr(self, field_name)
            if value.startswith('${') and ':' in value:
                var_name, default = value[2:-1].split(':', 1)
                resolved_value = os.getenv(var_name, default)
                setattr(self, field_name, resolved_value)

    def __post_init__(self):
        """Resolve paths on initialization"""
        self.resolve()

    def get_output_path(self, *args) -> Path:
        """Get path relative to output root"""
        return Path(self.output_root) / Path(*args)

    def get_log_path(self, *args) -> Path:
        """Get path relative to log root"""
        return Path(self.log_root) / Path(*args)


_SECTIONS = ('orb', 'matching', 'ransac', 'tracking', 'pose', 'paths')


@dataclass
class PipelineConfig:
    """Master configuration class combining all subconfigs"""
    orb: OrbConfig = field(default_factory=OrbConfig)
    matching: MatchConfig = field(default_factory=MatchConfig)
    ransac: RansacConfig = field(default_factory=RansacConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    pose: PoseConfig = field(default_factory=PoseConfig)
    paths: PathConfig = field(default_factory=PathConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """
        Build configuration from a nested dictionary

        Raises:
            ConfigError: If an unknown section or field is present, or a
                value fails validation
        """
        unknown = set(data) - set(_SECTIONS)
        if unknown:
            raise ConfigError(f"Unknown configuration sections: {sorted(unknown)}")

        try:
            return cls(
                orb=OrbConfig(**data.get('orb', {})),
                matching=MatchConfig(**data.get('matching', {})),
                ransac=RansacConfig(**data.get('ransac', {})),
                tracking=TrackingConfig(**data.get('tracking', {})),
                pose=PoseConfig(**data.get('pose', {})),
                paths=PathConfig(**data.get('paths', {})),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration field: {e}")
        except ValueError as e:
            raise ConfigError(f"Invalid configuration value: {e}")

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "PipelineConfig":
        """
        Load configuration from YAML file

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            PipelineConfig instance

        Raises:
            ConfigError: If the file is missing or the YAML format is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise ConfigError(f"Config file not found: {yaml_path}")

        try:
            with open(yaml_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML format in {yaml_path}: {e}")

        return cls.from_dict(data)

    @classmethod
    def from_env(cls, base_config: Optional["PipelineConfig"] = None) -> "PipelineConfig":
        """
        Create config from environment variables

        Supports environment variables like:
        - POSEREG_ORB_MAX_FEATURES
        - POSEREG_MATCH_RATIO
        - POSEREG_RANSAC_THRESHOLD
        - POSEREG_RANSAC_SEED
        - POSEREG_RANSAC_METHOD
        - POSEREG_POSE_MODEL_PATH
        - POSEREG_POSE_INTERVAL

        Args:
            base_config: Base configuration to override (default: new config)

        Returns:
            PipelineConfig instance with environment overrides
        """
        if base_config is None:
            config = cls()
        else:
            config = base_config

        # Override ORB config
        if 'POSEREG_ORB_MAX_FEATURES' in os.environ:
            config.orb.max_features = int(os.environ['POSEREG_ORB_MAX_FEATURES'])

        # Override matching config
        if 'POSEREG_MATCH_RATIO' in os.environ:
            config.matching.ratio = float(os.environ['POSEREG_MATCH_RATIO'])

        # Override RANSAC config
        if 'POSEREG_RANSAC_THRESHOLD' in os.environ:
            config.ransac.reprojection_threshold = float(
                os.environ['POSEREG_RANSAC_THRESHOLD']
            )
        if 'POSEREG_RANSAC_SEED' in os.environ:
            config.ransac.seed = int(os.environ['POSEREG_RANSAC_SEED'])
        if 'POSEREG_RANSAC_METHOD' in os.environ:
            method = os.environ['POSEREG_RANSAC_METHOD']
            if method not in TRANSFORM_METHODS:
                raise ConfigError(f"POSEREG_RANSAC_METHOD must be one of {list(TRANSFORM_METHODS)}")
            config.ransac.method = method

        # Override pose config
        if 'POSEREG_POSE_MODEL_PATH' in os.environ:
            config.pose.model_path = os.environ['POSEREG_POSE_MODEL_PATH']
        if 'POSEREG_POSE_INTERVAL' in os.environ:
            config.pose.interval_seconds = float(os.environ['POSEREG_POSE_INTERVAL'])

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return asdict(self)

    def to_yaml(self, yaml_path: str) -> None:
        """
        Save configuration to YAML file

        Args:
            yaml_path: Path to save YAML configuration
        """
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def __str__(self) -> str:
        """String representation of config"""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

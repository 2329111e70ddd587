"""
Feature JSON export/import

Document layout (version 1):

    {
      "version": 1,
      "type": "ORB",
      "imageSize": {"width": W, "height": H},
      "keypoints": [{"x", "y", "size", "angle", "response", "octave", "class_id"}],
      "descriptors": {"rows": N, "cols": 32, "data_b64": "..."}
    }

Keypoint positions are normalized by imageSize. Descriptors are the raw
row-major bytes, base64 encoded.
"""

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np

from ..core.constants import FEATURES_FORMAT_VERSION, FEATURES_TYPE, ORB_DESCRIPTOR_BYTES
from ..core.exceptions import FeatureFileError, ValidationError
from .types import Keypoint, KeypointSet

logger = logging.getLogger(__name__)


def export_features(features: KeypointSet) -> Dict[str, Any]:
    """
    Convert a KeypointSet to a JSON-serializable dictionary

    Args:
        features: Keypoints in pixel space of an image of
                  features.image_width x features.image_height

    Returns:
        Feature document (see module docstring)
    """
    width = features.image_width
    height = features.image_height

    keypoints = [
        {
            'x': kp.x / width,
            'y': kp.y / height,
            'size': kp.size,
            'angle': kp.angle,
            'response': kp.response,
            'octave': kp.octave,
            'class_id': kp.class_id,
        }
        for kp in features.keypoints
    ]

    descriptors = features.descriptors
    return {
        'version': FEATURES_FORMAT_VERSION,
        'type': FEATURES_TYPE,
        'imageSize': {'width': width, 'height': height},
        'keypoints': keypoints,
        'descriptors': {
            'rows': int(descriptors.shape[0]),
            'cols': int(descriptors.shape[1]),
            'data_b64': base64.b64encode(descriptors.tobytes()).decode('ascii'),
        },
    }


def _decode_descriptors(block: Any) -> np.ndarray:
    if block is None:
        return np.empty((0, ORB_DESCRIPTOR_BYTES), dtype=np.uint8)

    try:
        rows = int(block['rows'])
        cols = int(block['cols'])
        raw = base64.b64decode(block.get('data_b64') or '', validate=True)
    except (KeyError, TypeError, ValueError, binascii.Error) as e:
        raise FeatureFileError(f"Invalid descriptor block: {e}")

    if rows < 0 or cols <= 0 or len(raw) != rows * cols:
        raise FeatureFileError(
            f"Descriptor data has {len(raw)} bytes, expected {rows} x {cols}"
        )
    return np.frombuffer(raw, dtype=np.uint8).reshape(rows, cols)


def import_features(document: Dict[str, Any]) -> KeypointSet:
    """
    Rebuild a KeypointSet from a feature document

    Args:
        document: Parsed JSON dictionary

    Returns:
        KeypointSet with positions scaled back to pixels

    Raises:
        FeatureFileError: If the document is not a valid ORB feature file
    """
    if not isinstance(document, dict) or document.get('type') != FEATURES_TYPE:
        raise FeatureFileError("Invalid features JSON: missing or wrong 'type'")

    version = document.get('version', FEATURES_FORMAT_VERSION)
    if version != FEATURES_FORMAT_VERSION:
        raise FeatureFileError(f"Unsupported features version: {version}")

    try:
        width = int(document['imageSize']['width'])
        height = int(document['imageSize']['height'])
        raw_keypoints = document.get('keypoints') or []
        keypoints = tuple(
            Keypoint(
                x=float(kp['x']) * width,
                y=float(kp['y']) * height,
                size=float(kp.get('size', 31.0)),
                angle=float(kp.get('angle', -1.0)),
                response=float(kp.get('response', 0.0)),
                octave=int(kp.get('octave', 0)),
                class_id=int(kp.get('class_id', -1)),
            )
            for kp in raw_keypoints
        )
    except (KeyError, TypeError, ValueError) as e:
        raise FeatureFileError(f"Invalid features JSON: {e}")

    descriptors = _decode_descriptors(document.get('descriptors'))

    try:
        return KeypointSet(keypoints, descriptors, width, height)
    except ValidationError as e:
        raise FeatureFileError(f"Inconsistent features JSON: {e}")


def save_features(path: Union[str, Path], features: KeypointSet) -> Path:
    """Write features to a JSON file and return its path"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(export_features(features), f)
    logger.info("Saved %d features to %s", len(features), path)
    return path


def load_features(path: Union[str, Path]) -> KeypointSet:
    """
    Read features from a JSON file

    Raises:
        FeatureFileError: If the file is missing or not valid JSON
    """
    path = Path(path)
    if not path.exists():
        raise FeatureFileError(f"Features file not found: {path}")

    try:
        with open(path, 'r') as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise FeatureFileError(f"Invalid JSON in {path}: {e}")

    return import_features(document)

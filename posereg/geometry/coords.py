"""
Points, rectangles and coordinate-space conversions

Three coordinate spaces are in play throughout the pipeline:
- normalized: both components in [0, 1], relative to a reference size
- crop: pixels relative to the origin of a cropped sub-image
- full: pixels relative to the origin of the full image

Each space has its own point type. The conversion functions below are the
only way to move a point from one space to another.

Provides:
- NormalizedPoint, CropPoint, PixelPoint
- Rect with clamping to frame bounds
- Scalar and vectorized conversions between spaces
"""

import math
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class NormalizedPoint:
    """Point in [0, 1] space relative to some reference width/height"""
    x: float
    y: float


@dataclass(frozen=True)
class CropPoint:
    """Point in pixels relative to a crop rectangle's top-left corner"""
    x: float
    y: float


@dataclass(frozen=True)
class PixelPoint:
    """Point in pixels relative to the full image's top-left corner"""
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle in full-image pixel coordinates

    Invariant: width > 0 and height > 0.

    Example:
        >>> crop = Rect(100, 100, 200, 200)
        >>> crop.center
        PixelPoint(x=200.0, y=200.0)
    """
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        if not (self.width > 0 and self.height > 0):
            raise ValidationError(
                f"Rect width and height must be > 0, got {self.width}x{self.height}"
            )

    @classmethod
    def full_frame(cls, frame_width: int, frame_height: int) -> "Rect":
        """Rectangle covering a whole frame"""
        return cls(0, 0, frame_width, frame_height)

    @classmethod
    def from_dict(cls, data: Dict) -> "Rect":
        """Build from {'x', 'y', 'width', 'height'} (or 'left'/'top')"""
        x = data['x'] if 'x' in data else data['left']
        y = data['y'] if 'y' in data else data['top']
        return cls(x, y, data['width'], data['height'])

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> PixelPoint:
        return PixelPoint(self.x + self.width / 2.0, self.y + self.height / 2.0)

    def contains(self, point: PixelPoint) -> bool:
        """True if the full-image point lies inside the rectangle"""
        return self.x <= point.x < self.right and self.y <= point.y < self.bottom

    def clamp_to(self, frame_width: float, frame_height: float) -> "Rect":
        """
        Fit the rectangle inside a frame

        The size shrinks only when it exceeds the frame; the position is
        then clamped so that 0 <= x and x + width <= frame_width (same for y).

        Args:
            frame_width: Frame width in pixels
            frame_height: Frame height in pixels

        Returns:
            New Rect inside the frame
        """
        width = min(self.width, frame_width)
        height = min(self.height, frame_height)
        x = clamp(self.x, 0, frame_width - width)
        y = clamp(self.y, 0, frame_height - height)
        return Rect(x, y, width, height)

    def to_pixel_grid(self) -> "Rect":
        """
        Snap the edges to whole pixels (half up)

        The result is the window slice() cuts out, so it is also the rect to
        use when mapping crop coordinates back to the full image. Width and
        height stay at least one pixel.

        Example:
            >>> Rect(100.5, 100.5, 300.6, 300.6).to_pixel_grid()
            Rect(x=101, y=101, width=300, height=300)
        """
        x1 = round_half_up(self.x)
        y1 = round_half_up(self.y)
        x2 = max(round_half_up(self.x + self.width), x1 + 1)
        y2 = max(round_half_up(self.y + self.height), y1 + 1)
        return Rect(x1, y1, x2 - x1, y2 - y1)

    def slice(self, image: np.ndarray) -> np.ndarray:
        """
        Extract the sub-image covered by to_pixel_grid()

        Args:
            image: Full image (H, W, ...) array

        Returns:
            View of the cropped region
        """
        grid = self.to_pixel_grid()
        return image[grid.y:grid.y + grid.height, grid.x:grid.x + grid.width]


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]; lower wins when upper < lower"""
    return max(lower, min(value, upper))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 rounding up"""
    return int(math.floor(value + 0.5))


# ===== Scalar conversions =====

def normalized_to_crop(point: NormalizedPoint, crop: Rect) -> CropPoint:
    """Crop-normalized [0, 1] point -> pixel point local to the crop"""
    return CropPoint(point.x * crop.width, point.y * crop.height)


def crop_to_full(point: CropPoint, crop: Rect) -> PixelPoint:
    """Crop-local pixel point -> full-image pixel point"""
    return PixelPoint(point.x + crop.x, point.y + crop.y)


def full_to_crop(point: PixelPoint, crop: Rect) -> CropPoint:
    """Full-image pixel point -> crop-local pixel point"""
    return CropPoint(point.x - crop.x, point.y - crop.y)


def normalized_crop_to_full(point: NormalizedPoint, crop: Rect) -> PixelPoint:
    """
    Crop-normalized point -> full-image pixel point

    Example:
        >>> normalized_crop_to_full(NormalizedPoint(0.5, 0.5), Rect(100, 100, 200, 200))
        PixelPoint(x=200.0, y=200.0)
    """
    return crop_to_full(normalized_to_crop(point, crop), crop)


def full_to_normalized(point: PixelPoint, width: float, height: float) -> NormalizedPoint:
    """Full-image pixel point -> [0, 1] relative to width/height"""
    return NormalizedPoint(point.x / width, point.y / height)


def normalized_to_full(point: NormalizedPoint, width: float, height: float) -> PixelPoint:
    """[0, 1] point relative to width/height -> pixel point"""
    return PixelPoint(point.x * width, point.y * height)


# ===== Vectorized conversions for (N, 2) arrays =====

def normalized_array_to_full(points: np.ndarray, width: float, height: float) -> np.ndarray:
    """
    Scale (N, 2) normalized coordinates to pixels

    Args:
        points: (N, 2) array of normalized [x, y]
        width: Reference width in pixels
        height: Reference height in pixels

    Returns:
        (N, 2) float64 array in pixels
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return points * np.array([width, height], dtype=np.float64)


def full_array_to_normalized(points: np.ndarray, width: float, height: float) -> np.ndarray:
    """Inverse of normalized_array_to_full"""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return points / np.array([width, height], dtype=np.float64)


def crop_array_to_full(points: np.ndarray, crop: Rect) -> np.ndarray:
    """Offset (N, 2) crop-local pixel coordinates into the full image"""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return points + np.array([crop.x, crop.y], dtype=np.float64)


def points_to_array(points) -> np.ndarray:
    """Stack a sequence of point objects into an (N, 2) float64 array"""
    if len(points) == 0:
        return np.empty((0, 2), dtype=np.float64)
    return np.array([[p.x, p.y] for p in points], dtype=np.float64)

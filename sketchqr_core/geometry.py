from __future__ import annotations

from dataclasses import dataclass
import re

import numpy as np

from .errors import EmptyGeometryError, EncoderProduceError, InvalidRequestError


# Side of a finder glyph in encoder units at the 300px working canvas, used
# only when the encoder does not declare its corner size in modules.
# Recalibrate together with WORKING_CANVAS_SIZE.
DEFAULT_CORNER_FOOTPRINT = 28.0

_PATH_START = re.compile(r"^\s*[Mm]\s*(-?\d*\.?\d+(?:[eE][+-]?\d+)?)[\s,]*(-?\d*\.?\d+(?:[eE][+-]?\d+)?)")


@dataclass(frozen=True)
class RectPrimitive:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PathPrimitive:
    d: str

    @property
    def anchor(self) -> tuple[float, float] | None:
        match = _PATH_START.match(self.d)
        if match is None:
            return None
        return float(match.group(1)), float(match.group(2))


@dataclass(frozen=True)
class RawPrimitives:
    modules: tuple[RectPrimitive, ...]
    finders: tuple[PathPrimitive, ...]
    alignment: tuple[RectPrimitive, ...]

    def module_pitch(self) -> float | None:
        """Median module side; square-styled modules are all the same size."""
        if not self.modules:
            return None
        sides = np.array([min(r.width, r.height) for r in self.modules], dtype=np.float64)
        return float(np.median(sides))


@dataclass(frozen=True)
class InkBounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass(frozen=True)
class ProjectionTransform:
    scale: float
    offset_x: float
    offset_y: float

    def apply_rect(self, rect: RectPrimitive) -> RectPrimitive:
        return RectPrimitive(
            x=rect.x * self.scale + self.offset_x,
            y=rect.y * self.scale + self.offset_y,
            width=rect.width * self.scale,
            height=rect.height * self.scale,
        )

    def apply_point(self, x: float, y: float) -> tuple[float, float]:
        return x * self.scale + self.offset_x, y * self.scale + self.offset_y


def corner_footprint(primitives: RawPrimitives, corner_square_modules: int | None) -> float:
    if corner_square_modules is None:
        return DEFAULT_CORNER_FOOTPRINT
    if corner_square_modules <= 0:
        raise EncoderProduceError(f"encoder declared corner_square_modules={corner_square_modules}, must be > 0")
    pitch = primitives.module_pitch()
    if pitch is None or pitch <= 0:
        return DEFAULT_CORNER_FOOTPRINT
    return corner_square_modules * pitch


def measure_ink_bounds(primitives: RawPrimitives, footprint: float = DEFAULT_CORNER_FOOTPRINT) -> InkBounds:
    """Union of module and alignment rect extents plus each finder anchor grown by `footprint`.

    Finder path interiors are not walked; only the path-start anchor is read.
    """
    rects = primitives.modules + primitives.alignment
    extents = np.array(
        [(r.x, r.y, r.x + r.width, r.y + r.height) for r in rects],
        dtype=np.float64,
    ).reshape(-1, 4)
    points: list[tuple[float, float]] = []
    for finder in primitives.finders:
        if finder.anchor is None:
            raise EmptyGeometryError(f"empty geometry: finder path has no leading moveto: {finder.d[:40]!r}")
        points.append(finder.anchor)
    anchors = np.array(points, dtype=np.float64).reshape(-1, 2)
    if anchors.size:
        extents = np.vstack([extents, np.hstack([anchors, anchors + footprint])])
    if extents.size == 0:
        raise EmptyGeometryError("empty geometry: no primitives to measure")
    min_x, min_y = extents[:, :2].min(axis=0)
    max_x, max_y = extents[:, 2:].max(axis=0)
    return InkBounds(min_x=float(min_x), min_y=float(min_y), max_x=float(max_x), max_y=float(max_y))


def compute_projection(bounds: InkBounds, size: int, margin: int) -> ProjectionTransform:
    """Fit the ink box to the larger side of the drawable square and center it."""
    qr_width = bounds.width
    qr_height = bounds.height
    if qr_width <= 0 or qr_height <= 0:
        raise EmptyGeometryError(f"empty geometry: degenerate ink bounds {qr_width}x{qr_height}")
    drawable = size - margin * 2
    if drawable <= 0:
        raise InvalidRequestError(f"invalid request: no drawable area for size={size} margin={margin}")
    scale = drawable / max(qr_width, qr_height)
    scaled_width = qr_width * scale
    scaled_height = qr_height * scale
    offset_x = margin + (drawable - scaled_width) / 2 - bounds.min_x * scale
    offset_y = margin + (drawable - scaled_height) / 2 - bounds.min_y * scale
    return ProjectionTransform(scale=scale, offset_x=offset_x, offset_y=offset_y)

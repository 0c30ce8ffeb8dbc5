from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import logging
import math
import threading
from typing import Any, Protocol
import xml.etree.ElementTree as ET

import qrcode
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q

from .offscreen import OffscreenContainer
from .request import QRRenderRequest


LOGGER = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
WORKING_CANVAS_SIZE = 300
FINDER_MODULES = 7

_ERROR_CORRECTION = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}


@dataclass(frozen=True)
class ShapeStyle:
    color: str
    type: str = "square"

    def as_dict(self) -> dict[str, str]:
        return {"color": self.color, "type": self.type}


@dataclass(frozen=True)
class EncoderOptions:
    width: int
    height: int
    data: str
    dots_options: ShapeStyle
    corners_square_options: ShapeStyle
    corners_dot_options: ShapeStyle
    margin: int = 0
    type: str = "svg"
    background_color: str = "transparent"

    @classmethod
    def for_request(cls, request: QRRenderRequest, working_size: int = WORKING_CANVAS_SIZE) -> "EncoderOptions":
        if working_size <= 0:
            raise ValueError("working_size must be > 0")
        style = ShapeStyle(color=request.color, type="square")
        return cls(
            width=working_size,
            height=working_size,
            data=request.url,
            margin=0,
            type="svg",
            dots_options=style,
            corners_square_options=style,
            corners_dot_options=style,
            background_color="transparent",
        )

    def as_dict(self) -> dict[str, Any]:
        """Wire form accepted by styling QR renderers."""
        return {
            "width": self.width,
            "height": self.height,
            "data": self.data,
            "margin": self.margin,
            "type": self.type,
            "dotsOptions": self.dots_options.as_dict(),
            "cornersSquareOptions": self.corners_square_options.as_dict(),
            "cornersDotOptions": self.corners_dot_options.as_dict(),
            "backgroundOptions": {"color": self.background_color},
        }


class QREncoder(Protocol):
    """Renders a QR symbol as an SVG tree into an off-screen container.

    `append` may return before the container is populated; the caller waits
    on the container. `corner_square_modules` declares the finder glyph side
    in modules, or None when the encoder does not publish it.
    """

    corner_square_modules: int | None

    def append(self, options: EncoderOptions, container: OffscreenContainer) -> None:
        ...


@dataclass
class StyledQREncoder:
    """`qrcode`-backed encoder emitting clip-path masked SVG in the styling-renderer layout."""

    error_correction: str = "Q"
    threaded: bool = True
    corner_square_modules: int | None = FINDER_MODULES
    _instance_ids: itertools.count = field(default_factory=lambda: itertools.count(0), init=False, repr=False)
    _ids_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.error_correction not in _ERROR_CORRECTION:
            raise ValueError(f"unsupported error correction level: {self.error_correction}")

    def append(self, options: EncoderOptions, container: OffscreenContainer) -> None:
        if not self.threaded:
            self._render_into(options, container)
            return
        thread = threading.Thread(
            target=self._render_into,
            args=(options, container),
            name=f"sketchqr-encoder-{container.container_id}",
            daemon=True,
        )
        thread.start()

    def _render_into(self, options: EncoderOptions, container: OffscreenContainer) -> None:
        try:
            root = self.build_svg(options)
        except Exception as exc:
            LOGGER.debug("encoder failed for container id=%d: %s", container.container_id, exc)
            container.fail(exc)
            return
        container.mount(root)

    def module_matrix(self, data: str) -> list[list[bool]]:
        qr = qrcode.QRCode(error_correction=_ERROR_CORRECTION[self.error_correction], border=0)
        qr.add_data(data)
        qr.make(fit=True)
        return qr.get_matrix()

    def build_svg(self, options: EncoderOptions) -> ET.Element:
        if options.type != "svg":
            raise ValueError(f"unsupported output type: {options.type}")
        for style in (options.dots_options, options.corners_square_options, options.corners_dot_options):
            if style.type != "square":
                raise ValueError(f"unsupported shape type: {style.type}")
        matrix = self.module_matrix(options.data)
        count = len(matrix)
        min_size = min(options.width, options.height) - options.margin * 2
        dot = math.floor(min_size / count)
        if dot <= 0:
            raise ValueError(f"canvas {options.width}x{options.height} too small for {count} modules")
        x0 = math.floor((options.width - count * dot) / 2)
        y0 = math.floor((options.height - count * dot) / 2)
        with self._ids_lock:
            instance = next(self._instance_ids)

        svg = ET.Element(_q("svg"), {"width": str(options.width), "height": str(options.height)})
        defs = ET.SubElement(svg, _q("defs"))

        background_id = f"clip-path-background-color-{instance}"
        background_clip = ET.SubElement(defs, _q("clipPath"), {"id": background_id})
        ET.SubElement(
            background_clip,
            _q("rect"),
            {"x": "0", "y": "0", "width": str(options.width), "height": str(options.height)},
        )
        _wrapper(svg, background_id, 0, 0, options.width, options.height, options.background_color)

        dots_id = f"clip-path-dot-color-{instance}"
        dots_clip = ET.SubElement(defs, _q("clipPath"), {"id": dots_id})
        for row in range(count):
            for col in range(count):
                if not matrix[row][col] or _in_finder(col, row, count):
                    continue
                ET.SubElement(
                    dots_clip,
                    _q("rect"),
                    {
                        "x": str(x0 + col * dot),
                        "y": str(y0 + row * dot),
                        "width": str(dot),
                        "height": str(dot),
                    },
                )
        _wrapper(svg, dots_id, 0, 0, options.width, options.height, options.dots_options.color)

        square = dot * FINDER_MODULES
        inner = square - 2 * dot
        for column, row in ((0, 0), (1, 0), (0, 1)):
            x = x0 + column * (count - FINDER_MODULES) * dot
            y = y0 + row * (count - FINDER_MODULES) * dot

            square_id = f"clip-path-corners-square-color-{column}-{row}-{instance}"
            square_clip = ET.SubElement(defs, _q("clipPath"), {"id": square_id})
            ET.SubElement(
                square_clip,
                _q("path"),
                {
                    "clip-rule": "evenodd",
                    "d": (
                        f"M {x} {y}v {square}h {square}v {-square}z"
                        f"M {x + dot} {y + dot}h {inner}v {inner}h {-inner}z"
                    ),
                },
            )
            _wrapper(svg, square_id, x, y, square, square, options.corners_square_options.color)

            dot_id = f"clip-path-corners-dot-color-{column}-{row}-{instance}"
            dot_clip = ET.SubElement(defs, _q("clipPath"), {"id": dot_id})
            ET.SubElement(
                dot_clip,
                _q("rect"),
                {"x": str(x + dot * 2), "y": str(y + dot * 2), "width": str(dot * 3), "height": str(dot * 3)},
            )
            _wrapper(svg, dot_id, x + dot * 2, y + dot * 2, dot * 3, dot * 3, options.corners_dot_options.color)
        return svg


def _q(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def _wrapper(parent: ET.Element, clip_id: str, x: int, y: int, width: int, height: int, fill: str) -> None:
    ET.SubElement(
        parent,
        _q("rect"),
        {
            "x": str(x),
            "y": str(y),
            "height": str(height),
            "width": str(width),
            "clip-path": f"url('#{clip_id}')",
            "fill": fill,
        },
    )


def _in_finder(col: int, row: int, count: int) -> bool:
    edge = count - FINDER_MODULES
    if col < FINDER_MODULES and row < FINDER_MODULES:
        return True
    if col >= edge and row < FINDER_MODULES:
        return True
    return col < FINDER_MODULES and row >= edge

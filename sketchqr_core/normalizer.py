from __future__ import annotations

import logging
import re
import threading
import xml.etree.ElementTree as ET

from .encoder import SVG_NS, WORKING_CANVAS_SIZE, EncoderOptions, QREncoder, StyledQREncoder
from .errors import EncoderProduceError, GenerationError, SerializationError
from .extraction import extract_primitives
from .geometry import (
    ProjectionTransform,
    RawPrimitives,
    compute_projection,
    corner_footprint,
    measure_ink_bounds,
)
from .offscreen import OffscreenHost
from .request import QRRenderRequest


LOGGER = logging.getLogger(__name__)

DEFAULT_SETTLE_TIMEOUT_S = 1.0

_PROLOG = re.compile(r"<\?xml[^?]*\?>\s*")
_XLINK_DECL = re.compile(r"\s*xmlns:xlink=\"[^\"]*\"")


class QRVectorNormalizer:
    """Turns a raw encoder rendering into a flat, exactly sized SVG fragment.

    Every call renders into its own off-screen container, so overlapping
    calls on one normalizer never observe each other's output.
    """

    def __init__(
        self,
        encoder: QREncoder | None = None,
        *,
        host: OffscreenHost | None = None,
        working_size: int = WORKING_CANVAS_SIZE,
        settle_timeout_s: float = DEFAULT_SETTLE_TIMEOUT_S,
        poll_interval_s: float = 0.01,
    ) -> None:
        if working_size <= 0:
            raise ValueError("working_size must be > 0")
        if settle_timeout_s < 0:
            raise ValueError("settle_timeout_s must be >= 0")
        if poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")
        self._encoder = encoder if encoder is not None else StyledQREncoder()
        self._host = host if host is not None else OffscreenHost()
        self._working_size = working_size
        self._settle_timeout_s = settle_timeout_s
        self._poll_interval_s = poll_interval_s

    @property
    def host(self) -> OffscreenHost:
        return self._host

    def generate(self, request: QRRenderRequest, *, cancel_event: threading.Event | None = None) -> str:
        try:
            primitives = self._render_primitives(request, cancel_event)
            footprint = corner_footprint(primitives, getattr(self._encoder, "corner_square_modules", None))
            bounds = measure_ink_bounds(primitives, footprint)
            projection = compute_projection(bounds, request.size, request.margin)
            LOGGER.debug(
                "projection scale=%.6f offset=(%.4f, %.4f) footprint=%.2f",
                projection.scale,
                projection.offset_x,
                projection.offset_y,
                footprint,
            )
            return serialize_fragment(rewrite_primitives(primitives, projection, request))
        except GenerationError as exc:
            LOGGER.info("qr generation failed for url=%r: %s", request.url, exc)
            raise

    def _render_primitives(self, request: QRRenderRequest, cancel_event: threading.Event | None) -> RawPrimitives:
        options = EncoderOptions.for_request(request, self._working_size)
        with self._host.container() as container:
            try:
                self._encoder.append(options, container)
            except Exception as exc:
                raise EncoderProduceError(f"encoder failed: {exc}") from exc
            container.wait_populated(
                self._settle_timeout_s,
                cancel_event=cancel_event,
                poll_interval_s=self._poll_interval_s,
            )
            if container.error is not None:
                raise EncoderProduceError(f"encoder failed: {container.error}") from container.error
            svg = container.query_svg()
            if svg is None:
                raise EncoderProduceError(
                    f"encoder produced no svg element within {self._settle_timeout_s:.3f}s"
                )
            return extract_primitives(svg)


def generate(request: QRRenderRequest, **kwargs) -> str:
    cancel_event = kwargs.pop("cancel_event", None)
    return QRVectorNormalizer(**kwargs).generate(request, cancel_event=cancel_event)


def rewrite_primitives(
    primitives: RawPrimitives,
    projection: ProjectionTransform,
    request: QRRenderRequest,
) -> ET.Element:
    """Emit a fresh canvas: module and alignment rects projected, finder paths under one transform."""
    svg = ET.Element("svg", {"xmlns": SVG_NS})
    for rect in primitives.modules:
        _append_rect(svg, projection, rect, request.color)
    transform = (
        f"translate({format_number(projection.offset_x)},{format_number(projection.offset_y)}) "
        f"scale({format_number(projection.scale)})"
    )
    for finder in primitives.finders:
        ET.SubElement(
            svg,
            "path",
            {"d": finder.d, "fill": request.color, "fill-rule": "evenodd", "transform": transform},
        )
    for rect in primitives.alignment:
        _append_rect(svg, projection, rect, request.color)
    svg.set("width", str(request.size))
    svg.set("height", str(request.size))
    svg.set("viewBox", f"0 0 {request.size} {request.size}")
    return svg


def serialize_fragment(svg: ET.Element) -> str:
    try:
        text = ET.tostring(svg, encoding="unicode")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"serialization failed: {exc}") from exc
    text = _PROLOG.sub("", text)
    text = _XLINK_DECL.sub("", text)
    return text.replace("xlink:", "")


def format_number(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def _append_rect(svg: ET.Element, projection: ProjectionTransform, rect, color: str) -> None:
    out = projection.apply_rect(rect)
    ET.SubElement(
        svg,
        "rect",
        {
            "x": format_number(out.x),
            "y": format_number(out.y),
            "width": format_number(out.width),
            "height": format_number(out.height),
            "fill": color,
        },
    )

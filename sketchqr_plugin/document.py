from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Protocol

from sketchqr_core.render.svg import SvgDocument, SvgPath, SvgRect


LOGGER = logging.getLogger(__name__)


class HostDocument(Protocol):
    """Host-side document that turns an SVG fragment into native shapes."""

    def insert_svg(self, svg_markup: str, *, name: str) -> object:
        ...

    def message(self, text: str) -> None:
        ...


@dataclass(frozen=True)
class ShapeGroup:
    name: str
    width: float
    height: float
    rects: tuple[SvgRect, ...]
    paths: tuple[SvgPath, ...]

    @property
    def layer_count(self) -> int:
        return len(self.rects) + len(self.paths)


@dataclass
class InMemoryDocument:
    """Document stand-in that keeps inserted fragments as shape groups."""

    groups: list[ShapeGroup] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)

    def insert_svg(self, svg_markup: str, *, name: str) -> ShapeGroup:
        doc = SvgDocument.from_markup(svg_markup)
        if doc.external_refs:
            raise ValueError(f"fragment has external references: {doc.external_refs[0]}")
        group = ShapeGroup(
            name=name,
            width=doc.width,
            height=doc.height,
            rects=tuple(doc.rects),
            paths=tuple(doc.paths),
        )
        self.groups.append(group)
        LOGGER.debug("inserted group %r with %d layers", name, group.layer_count)
        return group

    def message(self, text: str) -> None:
        self.messages.append(text)

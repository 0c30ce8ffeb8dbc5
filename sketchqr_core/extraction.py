"""Structural extraction of QR primitive families from an encoder's SVG tree.

This is the only module that knows how the encoder masks its output. Groups
are found by role substrings in their ids, and both levels of indirection
the encoder uses are followed: wrapper shapes that reference a clip path via
`clip-path="url(#id)"`, and `<use href="#id">` children inside a clip path.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator
import xml.etree.ElementTree as ET

from .errors import EmptyGeometryError
from .geometry import PathPrimitive, RawPrimitives, RectPrimitive


LOGGER = logging.getLogger(__name__)

ROLE_MODULES = "dot-color"
ROLE_FINDERS = "corners-square"
ROLE_ALIGNMENT = "corners-dot"
EXPECTED_FINDERS = 3

# Corner-dot ids also contain "dot-color", so the specific roles are tried first.
_ROLE_PRECEDENCE = (ROLE_FINDERS, ROLE_ALIGNMENT, ROLE_MODULES)
_URL_REF = re.compile(r"url\(\s*['\"]?#([^'\")\s]+)['\"]?\s*\)")
_HREF_KEYS = ("href", "{http://www.w3.org/1999/xlink}href", "xlink:href")


def classify_role(element_id: str | None) -> str | None:
    if not element_id:
        return None
    for role in _ROLE_PRECEDENCE:
        if role in element_id:
            return role
    return None


def extract_primitives(svg: ET.Element) -> RawPrimitives:
    index = {elem.get("id"): elem for elem in svg.iter() if elem.get("id")}
    groups: dict[str, list[ET.Element]] = {ROLE_MODULES: [], ROLE_FINDERS: [], ROLE_ALIGNMENT: []}
    seen: set[int] = set()

    for group in _role_groups(svg, index):
        if id(group) in seen:
            continue
        role = classify_role(group.get("id"))
        if role is None:
            continue
        seen.add(id(group))
        groups[role].append(group)

    if not groups[ROLE_MODULES]:
        raise EmptyGeometryError("empty geometry: module group not found in encoder output")

    modules = tuple(
        _rect(shape) for group in groups[ROLE_MODULES] for shape in _geometry(group, index) if _tag(shape) == "rect"
    )
    if not modules:
        raise EmptyGeometryError("empty geometry: module group contains no rectangles")

    finders: list[PathPrimitive] = []
    for group in groups[ROLE_FINDERS]:
        path = next((shape for shape in _geometry(group, index) if _tag(shape) == "path"), None)
        if path is not None and path.get("d"):
            finders.append(PathPrimitive(d=path.get("d", "")))
    alignment = tuple(
        _rect(shape) for group in groups[ROLE_ALIGNMENT] for shape in _geometry(group, index) if _tag(shape) == "rect"
    )

    if len(finders) != EXPECTED_FINDERS:
        LOGGER.warning("expected %d finder patterns, found %d", EXPECTED_FINDERS, len(finders))
    LOGGER.debug(
        "extracted primitives modules=%d finders=%d alignment=%d",
        len(modules),
        len(finders),
        len(alignment),
    )
    return RawPrimitives(modules=modules, finders=tuple(finders), alignment=alignment)


def _role_groups(svg: ET.Element, index: dict[str | None, ET.Element]) -> Iterator[ET.Element]:
    # Groups reachable through a referencing wrapper come first, in paint order.
    for elem in svg.iter():
        ref = _url_ref(elem.get("clip-path"))
        if ref is not None and ref in index:
            yield index[ref]
    for elem in svg.iter():
        if _tag(elem) in ("clipPath", "g") and elem.get("id"):
            yield elem


def _geometry(group: ET.Element, index: dict[str | None, ET.Element]) -> Iterator[ET.Element]:
    for child in group.iter():
        if child is group:
            continue
        tag = _tag(child)
        if tag in ("rect", "path"):
            if child.get("clip-path") is None:
                yield child
        elif tag == "use":
            target = index.get(_href(child))
            if target is not None and _tag(target) in ("rect", "path"):
                yield target


def _rect(elem: ET.Element) -> RectPrimitive:
    return RectPrimitive(
        x=_number(elem.get("x")),
        y=_number(elem.get("y")),
        width=_number(elem.get("width")),
        height=_number(elem.get("height")),
    )


def _number(value: str | None) -> float:
    if not value:
        return 0.0
    value = value.strip()
    if value.endswith("px"):
        value = value[:-2]
    try:
        return float(value)
    except ValueError:
        return 0.0


def _url_ref(value: str | None) -> str | None:
    if not value:
        return None
    match = _URL_REF.search(value)
    return match.group(1) if match else None


def _href(elem: ET.Element) -> str | None:
    for key in _HREF_KEYS:
        value = elem.get(key)
        if value and value.startswith("#"):
            return value[1:]
    return None


def _tag(elem: ET.Element) -> str:
    tag = elem.tag
    if not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag

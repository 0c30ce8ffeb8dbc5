from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Optional
import xml.etree.ElementTree as ET

from PIL import ImageColor


Color = tuple[int, int, int, int]
Point = tuple[float, float]
# Affine matrix (a, b, c, d, e, f) as in the SVG `matrix()` transform.
Matrix = tuple[float, float, float, float, float, float]

IDENTITY: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)

_PATH_TOKENS = re.compile(r"[MmLlHhVvZz]|-?\d*\.?\d+(?:[eE][+-]?\d+)?")
_TRANSFORM_FUNCS = re.compile(r"(translate|scale|matrix)\s*\(([^)]*)\)")
_NUMBER = re.compile(r"-?\d*\.?\d+(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class SvgRect:
    x: float
    y: float
    width: float
    height: float
    fill: Optional[Color]


@dataclass(frozen=True)
class SvgPath:
    d: str
    subpaths: tuple[tuple[Point, ...], ...]
    fill: Optional[Color]
    fill_rule: str
    transform: Matrix

    def transformed_subpaths(self) -> list[list[Point]]:
        return [[apply_matrix(self.transform, p) for p in sub] for sub in self.subpaths]


@dataclass
class SvgDocument:
    """Flat rect/path view of an SVG fragment, used for host insertion and previews."""

    width: float
    height: float
    viewbox: tuple[float, float, float, float]
    rects: list[SvgRect]
    paths: list[SvgPath]
    external_refs: list[str]

    @classmethod
    def from_markup(cls, svg_markup: str) -> "SvgDocument":
        root = ET.fromstring(svg_markup)
        return cls._from_root(root)

    @classmethod
    def _from_root(cls, root: ET.Element) -> "SvgDocument":
        width = _parse_length(root.attrib.get("width"))
        height = _parse_length(root.attrib.get("height"))
        viewbox = _parse_viewbox(root.attrib.get("viewBox"))
        if viewbox is None:
            vb = (0.0, 0.0, width or 100.0, height or 100.0)
        else:
            vb = viewbox
        if width is None:
            width = vb[2]
        if height is None:
            height = vb[3]
        rects: list[SvgRect] = []
        paths: list[SvgPath] = []
        external_refs: list[str] = []
        for elem in root.iter():
            tag = _strip_namespace(elem.tag)
            for key, value in elem.attrib.items():
                if _strip_namespace(key) == "href" or "url(" in value:
                    external_refs.append(value)
            if tag == "rect":
                rects.append(_parse_rect(elem))
            elif tag == "path":
                path = _parse_path(elem)
                if path:
                    paths.append(path)
        return cls(
            width=width,
            height=height,
            viewbox=vb,
            rects=rects,
            paths=paths,
            external_refs=external_refs,
        )

    def bounds(self) -> tuple[float, float, float, float] | None:
        """(min_x, min_y, max_x, max_y) over rects and transformed path points."""
        xs: list[float] = []
        ys: list[float] = []
        for rect in self.rects:
            xs.extend((rect.x, rect.x + rect.width))
            ys.extend((rect.y, rect.y + rect.height))
        for path in self.paths:
            for sub in path.transformed_subpaths():
                for px, py in sub:
                    xs.append(px)
                    ys.append(py)
        if not xs:
            return None
        return min(xs), min(ys), max(xs), max(ys)


def parse_transform(value: Optional[str]) -> Matrix:
    if not value:
        return IDENTITY
    result = IDENTITY
    for name, params in _TRANSFORM_FUNCS.findall(value):
        nums = [float(n) for n in _NUMBER.findall(params)]
        if name == "translate":
            tx = nums[0] if nums else 0.0
            ty = nums[1] if len(nums) > 1 else 0.0
            m: Matrix = (1.0, 0.0, 0.0, 1.0, tx, ty)
        elif name == "scale":
            sx = nums[0] if nums else 1.0
            sy = nums[1] if len(nums) > 1 else sx
            m = (sx, 0.0, 0.0, sy, 0.0, 0.0)
        else:
            if len(nums) != 6:
                raise ValueError(f"matrix() takes 6 values, got {len(nums)}")
            m = tuple(nums)  # type: ignore[assignment]
        result = _multiply(result, m)
    return result


def apply_matrix(m: Matrix, point: Point) -> Point:
    a, b, c, d, e, f = m
    x, y = point
    return a * x + c * y + e, b * x + d * y + f


def parse_path_data(d: str) -> tuple[tuple[Point, ...], ...]:
    """Polygonal subpaths of a path made of move/line/horizontal/vertical/close commands."""
    tokens = _PATH_TOKENS.findall(d)
    subpaths: list[list[Point]] = []
    current: list[Point] = []
    x = y = 0.0
    start = (0.0, 0.0)
    cmd = ""
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.isalpha():
            cmd = tok
            i += 1
            if cmd in "Zz":
                if current:
                    subpaths.append(current)
                    current = []
                x, y = start
            continue
        if not cmd:
            raise ValueError(f"path data must start with a command: {d!r}")
        if cmd in "MmLl":
            if i + 1 >= len(tokens):
                raise ValueError(f"truncated coordinate pair in path: {d!r}")
            nx, ny = float(tokens[i]), float(tokens[i + 1])
            i += 2
            if cmd.islower():
                nx, ny = x + nx, y + ny
            if cmd in "Mm":
                if current:
                    subpaths.append(current)
                current = [(nx, ny)]
                start = (nx, ny)
                # Extra pairs after a moveto are implicit linetos.
                cmd = "l" if cmd == "m" else "L"
            else:
                current.append((nx, ny))
            x, y = nx, ny
        elif cmd in "Hh":
            value = float(tokens[i])
            i += 1
            x = x + value if cmd == "h" else value
            current.append((x, y))
        elif cmd in "Vv":
            value = float(tokens[i])
            i += 1
            y = y + value if cmd == "v" else value
            current.append((x, y))
    if current:
        subpaths.append(current)
    return tuple(tuple(sub) for sub in subpaths)


def parse_color(value: Optional[str]) -> Optional[Color]:
    if not value:
        return None
    value = value.strip()
    if value in ("none", "transparent"):
        return None
    try:
        return ImageColor.getcolor(value, "RGBA")  # type: ignore[return-value]
    except ValueError:
        return None


def _multiply(m1: Matrix, m2: Matrix) -> Matrix:
    a1, b1, c1, d1, e1, f1 = m1
    a2, b2, c2, d2, e2, f2 = m2
    return (
        a1 * a2 + c1 * b2,
        b1 * a2 + d1 * b2,
        a1 * c2 + c1 * d2,
        b1 * c2 + d1 * d2,
        a1 * e2 + c1 * f2 + e1,
        b1 * e2 + d1 * f2 + f1,
    )


def _strip_namespace(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _parse_length(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    value = value.strip()
    if value.endswith("px"):
        value = value[:-2]
    try:
        return float(value)
    except ValueError:
        return None


def _parse_viewbox(value: Optional[str]) -> Optional[tuple[float, float, float, float]]:
    if not value:
        return None
    parts = value.replace(",", " ").split()
    if len(parts) != 4:
        return None
    try:
        return tuple(float(p) for p in parts)  # type: ignore[return-value]
    except ValueError:
        return None


def _parse_rect(elem: ET.Element) -> SvgRect:
    x = _parse_length(elem.attrib.get("x")) or 0.0
    y = _parse_length(elem.attrib.get("y")) or 0.0
    w = _parse_length(elem.attrib.get("width")) or 0.0
    h = _parse_length(elem.attrib.get("height")) or 0.0
    fill = parse_color(elem.attrib.get("fill"))
    return SvgRect(x=x, y=y, width=w, height=h, fill=fill)


def _parse_path(elem: ET.Element) -> Optional[SvgPath]:
    d = elem.attrib.get("d")
    if not d:
        return None
    subpaths = parse_path_data(d)
    if not subpaths:
        return None
    return SvgPath(
        d=d,
        subpaths=subpaths,
        fill=parse_color(elem.attrib.get("fill")),
        fill_rule=elem.attrib.get("fill-rule", "nonzero"),
        transform=parse_transform(elem.attrib.get("transform")),
    )

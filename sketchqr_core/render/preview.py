from __future__ import annotations

import math
from pathlib import Path

from PIL import Image
import torch

from .svg import Color, Point, SvgDocument


TRANSPARENT: Color = (0, 0, 0, 0)


def rasterize_fragment(
    svg_markup: str,
    *,
    scale: float = 1.0,
    background: Color = TRANSPARENT,
) -> torch.Tensor:
    """Rasterize a normalized QR fragment into an HxWx4 uint8 RGBA tensor.

    Only opaque solid fills are drawn; rect edges are rounded to whole pixels
    and paths are filled by scanline with their own fill rule.
    """
    if scale <= 0:
        raise ValueError("scale must be > 0")
    doc = SvgDocument.from_markup(svg_markup)
    width = max(1, int(round(doc.width * scale)))
    height = max(1, int(round(doc.height * scale)))
    vb_x, vb_y, vb_w, vb_h = doc.viewbox
    sx = width / vb_w if vb_w else scale
    sy = height / vb_h if vb_h else scale
    bg = torch.tensor(background, dtype=torch.uint8).view(1, 1, 4)
    matrix = bg.expand(height, width, 4).clone()

    for rect in doc.rects:
        if rect.fill is None:
            continue
        x0 = _clamp(round((rect.x - vb_x) * sx), width)
        y0 = _clamp(round((rect.y - vb_y) * sy), height)
        x1 = _clamp(round((rect.x + rect.width - vb_x) * sx), width)
        y1 = _clamp(round((rect.y + rect.height - vb_y) * sy), height)
        if x1 > x0 and y1 > y0:
            matrix[y0:y1, x0:x1] = torch.tensor(rect.fill, dtype=torch.uint8)
    for path in doc.paths:
        if path.fill is None:
            continue
        polygons = [
            [((px - vb_x) * sx, (py - vb_y) * sy) for px, py in sub] for sub in path.transformed_subpaths()
        ]
        _fill_polygons(matrix, polygons, path.fill, even_odd=path.fill_rule == "evenodd")
    return matrix


def export_preview_png(svg_markup: str, out_path: str | Path, *, scale: float = 1.0) -> Path:
    path = Path(out_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    matrix = rasterize_fragment(svg_markup, scale=scale)
    Image.fromarray(matrix.numpy()).save(path, format="PNG")
    return path


def _clamp(value: int, limit: int) -> int:
    return max(0, min(limit, int(value)))


def _fill_polygons(matrix: torch.Tensor, polygons: list[list[Point]], color: Color, *, even_odd: bool) -> None:
    height, width = matrix.shape[0], matrix.shape[1]
    edges: list[tuple[float, float, float, float, int]] = []
    for poly in polygons:
        if len(poly) < 3:
            continue
        for (x0, y0), (x1, y1) in zip(poly, poly[1:] + poly[:1]):
            if y0 == y1:
                continue
            edges.append((x0, y0, x1, y1, 1 if y1 > y0 else -1))
    if not edges:
        return
    fill = torch.tensor(color, dtype=torch.uint8)
    min_y = max(0, math.floor(min(min(e[1], e[3]) for e in edges)))
    max_y = min(height, math.ceil(max(max(e[1], e[3]) for e in edges)))
    for row in range(min_y, max_y):
        # Sample at pixel centers.
        y = row + 0.5
        crossings: list[tuple[float, int]] = []
        for x0, y0, x1, y1, winding in edges:
            if min(y0, y1) <= y < max(y0, y1):
                crossings.append((x0 + (y - y0) * (x1 - x0) / (y1 - y0), winding))
        crossings.sort()
        inside = 0
        for (xa, wa), (xb, _) in zip(crossings, crossings[1:]):
            inside = inside + 1 if even_odd else inside + wa
            filled = inside % 2 == 1 if even_odd else inside != 0
            if not filled:
                continue
            c0 = _clamp(round(xa), width)
            c1 = _clamp(round(xb), width)
            if c1 > c0:
                matrix[row, c0:c1] = fill

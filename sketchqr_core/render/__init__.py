from .preview import export_preview_png, rasterize_fragment
from .svg import SvgDocument, SvgPath, SvgRect, parse_path_data, parse_transform

__all__ = [
    "SvgDocument",
    "SvgPath",
    "SvgRect",
    "export_preview_png",
    "parse_path_data",
    "parse_transform",
    "rasterize_fragment",
]

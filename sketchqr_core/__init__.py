from .encoder import WORKING_CANVAS_SIZE, EncoderOptions, QREncoder, ShapeStyle, StyledQREncoder
from .errors import (
    EmptyGeometryError,
    EncoderProduceError,
    GenerationCancelledError,
    GenerationError,
    InvalidRequestError,
    SerializationError,
)
from .extraction import classify_role, extract_primitives
from .geometry import (
    DEFAULT_CORNER_FOOTPRINT,
    InkBounds,
    PathPrimitive,
    ProjectionTransform,
    RawPrimitives,
    RectPrimitive,
    compute_projection,
    measure_ink_bounds,
)
from .normalizer import QRVectorNormalizer, generate, rewrite_primitives, serialize_fragment
from .offscreen import OffscreenContainer, OffscreenHost
from .request import DEFAULT_OPTIONS, QRRenderRequest, merge_options

__all__ = [
    "DEFAULT_CORNER_FOOTPRINT",
    "DEFAULT_OPTIONS",
    "WORKING_CANVAS_SIZE",
    "EmptyGeometryError",
    "EncoderOptions",
    "EncoderProduceError",
    "GenerationCancelledError",
    "GenerationError",
    "InkBounds",
    "InvalidRequestError",
    "OffscreenContainer",
    "OffscreenHost",
    "PathPrimitive",
    "ProjectionTransform",
    "QREncoder",
    "QRRenderRequest",
    "QRVectorNormalizer",
    "RawPrimitives",
    "RectPrimitive",
    "SerializationError",
    "ShapeStyle",
    "StyledQREncoder",
    "classify_role",
    "compute_projection",
    "extract_primitives",
    "generate",
    "measure_ink_bounds",
    "merge_options",
    "rewrite_primitives",
    "serialize_fragment",
]

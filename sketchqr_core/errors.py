from __future__ import annotations


class GenerationError(RuntimeError):
    """Base class for every failure reported by the QR normalizer."""


class InvalidRequestError(GenerationError):
    pass


class EncoderProduceError(GenerationError):
    pass


class EmptyGeometryError(GenerationError):
    pass


class SerializationError(GenerationError):
    pass


class GenerationCancelledError(GenerationError):
    pass

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .errors import InvalidRequestError


DEFAULT_OPTIONS: dict[str, Any] = {
    "url": "https://wo.studio",
    "color": "#000000",
    "size": 150,
    "margin": 0,
}
OPTION_KEYS = tuple(DEFAULT_OPTIONS)


@dataclass(frozen=True)
class QRRenderRequest:
    """One QR generation call: target URL, fill color, output side and inset in pixels."""

    url: str
    color: str
    size: int
    margin: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url.strip():
            raise InvalidRequestError("invalid request: url must be a non-empty string")
        if not _is_int(self.size) or self.size <= 0:
            raise InvalidRequestError(f"invalid request: size must be a positive integer, got {self.size!r}")
        if not _is_int(self.margin) or self.margin < 0:
            raise InvalidRequestError(f"invalid request: margin must be an integer >= 0, got {self.margin!r}")
        if self.margin * 2 >= self.size:
            raise InvalidRequestError(
                f"invalid request: margin*2 must be < size (size={self.size}, margin={self.margin})"
            )
        if not isinstance(self.color, str) or not self.color.strip():
            raise InvalidRequestError("invalid request: color must be a non-empty string")

    @property
    def drawable(self) -> int:
        return self.size - self.margin * 2

    def as_options(self) -> dict[str, Any]:
        return {"url": self.url, "color": self.color, "size": self.size, "margin": self.margin}

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any] | None = None,
        *,
        defaults: Mapping[str, Any] | None = None,
    ) -> "QRRenderRequest":
        merged = merge_options(options, defaults=defaults)
        return cls(
            url=merged["url"],
            color=merged["color"],
            size=_coerce_int(merged["size"], "size"),
            margin=_coerce_int(merged["margin"], "margin"),
        )


def merge_options(
    options: Mapping[str, Any] | None,
    *,
    defaults: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Lay caller overrides over the default record; unknown keys and None values are dropped."""
    merged = dict(DEFAULT_OPTIONS)
    for source in (defaults, options):
        if not source:
            continue
        for key in OPTION_KEYS:
            value = source.get(key)
            if value is not None:
                merged[key] = value
    return merged


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_int(value: Any, label: str) -> int:
    # Panel form fields arrive as strings or floats.
    if _is_int(value):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidRequestError(f"invalid request: {label} must be an integer, got {value!r}")

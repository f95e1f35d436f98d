"""Form state and encoder options for QR generation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class ErrorCorrectionLevel(str, Enum):
    """QR error correction levels, ordered by increasing redundancy."""

    L = "L"
    M = "M"
    Q = "Q"
    H = "H"

    @classmethod
    def parse(cls, value: Any) -> "ErrorCorrectionLevel":
        """Accept a member or its letter in any case."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise ValueError(f"Unknown error correction level: {value!r}") from exc

    @property
    def rank(self) -> int:
        """Position in the L < M < Q < H ordering."""
        return list(type(self)).index(self)


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be a number, got {value!r}") from exc


@dataclass(frozen=True, slots=True)
class EncodeOptions:
    """Options record shared by the raster and vector encoder calls."""

    error_correction_level: ErrorCorrectionLevel
    margin: int
    dark_color: str
    light_color: str
    pixel_width: int


@dataclass(slots=True)
class QRConfiguration:
    """Parameters of a single generation request.

    Values are held as given; range checks on ``pixel_size`` (64-2000) and
    ``margin`` (0-10) belong to the form widgets, not to this model.
    """

    content: str = "https://example.com"
    pixel_size: Any = 300
    margin: Any = 2
    dark_color: str = "#000000"
    light_color: str = "#ffffff"
    error_correction_level: ErrorCorrectionLevel = ErrorCorrectionLevel.M

    def is_encodable(self) -> bool:
        """Return True when the content has something besides whitespace."""
        return bool((self.content or "").strip())

    def snapshot(self) -> "QRConfiguration":
        """Return an independent copy of the current values."""
        return replace(self)

    def to_options(self) -> EncodeOptions:
        """Build the encoder options, coercing numeric fields to integers."""
        return EncodeOptions(
            error_correction_level=ErrorCorrectionLevel.parse(self.error_correction_level),
            margin=_as_int(self.margin, "margin"),
            dark_color=self.dark_color,
            light_color=self.light_color,
            pixel_width=_as_int(self.pixel_size, "pixel_size"),
        )

"""QR encoder contract and the qrcode/Pillow backed implementation."""

from __future__ import annotations

import io
from enum import Enum
from typing import List, Protocol, Sequence, Tuple

import qrcode
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.exceptions import DataOverflowError
from PIL import Image, ImageColor

from modules.pipelines.qr_options import EncodeOptions, ErrorCorrectionLevel
from modules.utils.image_utils import to_data_url

# Module scale used when the requested width cannot fit one pixel per module.
FALLBACK_SCALE = 4

_QRCODE_LEVELS = {
    ErrorCorrectionLevel.L: ERROR_CORRECT_L,
    ErrorCorrectionLevel.M: ERROR_CORRECT_M,
    ErrorCorrectionLevel.Q: ERROR_CORRECT_Q,
    ErrorCorrectionLevel.H: ERROR_CORRECT_H,
}

RGBA = Tuple[int, int, int, int]


class OutputFormat(str, Enum):
    """Artifact formats an encoder can produce."""

    PNG = "png"
    SVG = "svg"


class EncoderError(Exception):
    """Raised when content or options cannot be turned into a symbol."""


class QREncoder(Protocol):
    """Narrow contract of the external encoding service."""

    def encode(self, content: str, options: EncodeOptions, fmt: OutputFormat) -> str:
        """Return a PNG data URL or SVG markup for ``content``."""
        ...


def _parse_color(value: str) -> RGBA:
    try:
        return ImageColor.getcolor(value, "RGBA")  # type: ignore[return-value]
    except (ValueError, TypeError, AttributeError) as exc:
        raise EncoderError(f"Invalid color value: {value!r}") from exc


def _svg_paint(attribute: str, color: RGBA) -> str:
    red, green, blue, alpha = color
    paint = f'{attribute}="#{red:02x}{green:02x}{blue:02x}"'
    if alpha < 255:
        paint += f' {attribute}-opacity="{alpha / 255:.2f}"'
    return paint


class QRCodeEncoder:
    """Build symbols with ``qrcode`` and render them with Pillow."""

    def build_matrix(self, content: str, options: EncodeOptions) -> List[List[bool]]:
        """Return the module grid, quiet zone included."""
        try:
            qr = qrcode.QRCode(
                version=None,
                error_correction=_QRCODE_LEVELS[options.error_correction_level],
                box_size=1,
                border=options.margin,
            )
            qr.add_data(content)
            qr.make(fit=True)
        except DataOverflowError as exc:
            raise EncoderError(
                f"Content is too long for error correction level {options.error_correction_level.value}."
            ) from exc
        except ValueError as exc:
            raise EncoderError(str(exc)) from exc
        return qr.get_matrix()

    def encode(self, content: str, options: EncodeOptions, fmt: OutputFormat) -> str:
        dark = _parse_color(options.dark_color)
        light = _parse_color(options.light_color)
        if options.pixel_width <= 0:
            raise EncoderError(f"Width must be positive, got {options.pixel_width}.")
        matrix = self.build_matrix(content, options)
        width = options.pixel_width
        if width < len(matrix):
            width = len(matrix) * FALLBACK_SCALE

        if fmt == OutputFormat.PNG:
            return to_data_url(self._render_png(matrix, width, dark, light))
        if fmt == OutputFormat.SVG:
            return self._render_svg(matrix, width, dark, light)
        raise EncoderError(f"Unsupported output format: {fmt!r}")

    def _render_png(self, matrix: Sequence[Sequence[bool]], width: int, dark: RGBA, light: RGBA) -> bytes:
        modules = len(matrix)
        image = Image.new("RGBA", (modules, modules), light)
        image.putdata([dark if cell else light for row in matrix for cell in row])
        image = image.resize((width, width), Image.Resampling.NEAREST)

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def _render_svg(self, matrix: Sequence[Sequence[bool]], width: int, dark: RGBA, light: RGBA) -> str:
        modules = len(matrix)
        segments: List[str] = []
        for y, row in enumerate(matrix):
            x = 0
            while x < modules:
                if not row[x]:
                    x += 1
                    continue
                start = x
                while x < modules and row[x]:
                    x += 1
                segments.append(f"M{start} {y + 0.5}h{x - start}")

        background = f'<path {_svg_paint("fill", light)} d="M0 0h{modules}v{modules}H0z"/>'
        foreground = f'<path {_svg_paint("stroke", dark)} d="{"".join(segments)}"/>' if segments else ""
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{width}" '
            f'viewBox="0 0 {modules} {modules}" shape-rendering="crispEdges">'
            f"{background}{foreground}</svg>\n"
        )

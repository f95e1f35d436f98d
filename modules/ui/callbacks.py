"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, List, Optional, Tuple

from config.settings import AppConfig
from modules.errors import ExportFailure, QRStudioError, ValidationSkip
from modules.pipelines.qr_options import ErrorCorrectionLevel, QRConfiguration
from modules.pipelines.qr_pipeline import QRGenerationService
from modules.services.export_service import ExportService
from modules.services.history_service import HistoryEntry
from modules.utils.image_utils import data_url_to_image, generate_thumbnail

_RGBA_PATTERN = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)

GalleryItem = Tuple[Any, str]


def _normalize_color(value: Any, default: str) -> str:
    """Convert colour picker output (hex or ``rgba(...)``) to a hex string."""
    if not value:
        return default
    text = str(value).strip()
    match = _RGBA_PATTERN.match(text)
    if match is None:
        return text
    red, green, blue = (max(0, min(255, round(float(part)))) for part in match.groups()[:3])
    hex_color = f"#{red:02x}{green:02x}{blue:02x}"
    alpha = match.group(4)
    if alpha is not None:
        opacity = float(alpha)
        if opacity <= 1:
            opacity *= 255
        opacity = max(0, min(255, round(opacity)))
        if opacity < 255:
            hex_color += f"{opacity:02x}"
    return hex_color


def _default_level(config: AppConfig) -> ErrorCorrectionLevel:
    try:
        return ErrorCorrectionLevel.parse(config.default_ec_level)
    except ValueError:
        return ErrorCorrectionLevel.M


def _caption(entry: HistoryEntry, limit: int = 40) -> str:
    text = entry.text if len(entry.text) <= limit else entry.text[: limit - 1] + "…"
    stamp = entry.generated_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    return f"{text}\n{stamp}"


def build_callbacks(
    config: AppConfig,
    pipeline: QRGenerationService,
    exporter: ExportService,
) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions."""

    store = pipeline.history
    shown_ids: List[int] = []

    def _build_configuration(
        content: str,
        size: Any,
        margin: Any,
        dark_color: Any,
        light_color: Any,
        ec_level: Any,
    ) -> QRConfiguration:
        try:
            level = ErrorCorrectionLevel.parse(ec_level or config.default_ec_level)
        except ValueError:
            level = _default_level(config)
        return QRConfiguration(
            content=content or "",
            pixel_size=config.default_size if size in ("", None) else size,
            margin=config.default_margin if margin in ("", None) else margin,
            dark_color=_normalize_color(dark_color, config.default_dark_color),
            light_color=_normalize_color(light_color, config.default_light_color),
            error_correction_level=level,
        )

    def _current_preview() -> Optional[Any]:
        current = pipeline.current
        if current is None:
            return None
        return data_url_to_image(current.png_data_url)

    def history_gallery() -> List[GalleryItem]:
        items: List[GalleryItem] = []
        ids: List[int] = []
        for entry in store.entries:
            try:
                preview = generate_thumbnail(data_url_to_image(entry.png_data_url))
            except (ValueError, OSError):
                continue
            items.append((preview, _caption(entry)))
            ids.append(entry.id)
        shown_ids[:] = ids
        return items

    def _entry_for(entry_id: Any) -> Optional[HistoryEntry]:
        if entry_id in ("", None):
            return None
        try:
            return store.get_by_id(int(entry_id))
        except (TypeError, ValueError):
            return None

    def on_select_history(index: Any) -> Optional[int]:
        """Map a gallery position to the id of the entry shown there."""
        try:
            position = int(index)
        except (TypeError, ValueError):
            return None
        if 0 <= position < len(shown_ids):
            return shown_ids[position]
        return None

    async def on_generate(
        content: str,
        size: Any,
        margin: Any,
        dark_color: Any,
        light_color: Any,
        ec_level: Any,
    ) -> tuple[Optional[Any], List[GalleryItem], str]:
        form = _build_configuration(content, size, margin, dark_color, light_color, ec_level)
        try:
            pair = await pipeline.generate(form)
        except ValidationSkip:
            return _current_preview(), history_gallery(), "Enter some content first."
        except QRStudioError as exc:
            return _current_preview(), history_gallery(), str(exc)
        return data_url_to_image(pair.png_data_url), history_gallery(), "QR code generated."

    async def on_use_history(
        entry_id: Any,
        size: Any,
        margin: Any,
        dark_color: Any,
        light_color: Any,
        ec_level: Any,
    ) -> tuple[str, Optional[Any], List[GalleryItem], str]:
        entry = _entry_for(entry_id)
        if entry is None:
            current = pipeline.current
            return (
                current.content if current else "",
                _current_preview(),
                history_gallery(),
                "Select a history item first.",
            )
        form = _build_configuration(entry.text, size, margin, dark_color, light_color, ec_level)
        try:
            pair = await pipeline.replay(entry, form)
        except QRStudioError as exc:
            return form.content, _current_preview(), history_gallery(), str(exc)
        return form.content, data_url_to_image(pair.png_data_url), history_gallery(), "QR code generated."

    def on_download_png() -> tuple[Optional[str], str]:
        try:
            path = exporter.export_raster()
        except ExportFailure as exc:
            return None, str(exc)
        return str(path), f"Saved {Path(path).name}"

    def on_download_svg() -> tuple[Optional[str], str]:
        try:
            path = exporter.export_vector()
        except ExportFailure as exc:
            return None, str(exc)
        return str(path), f"Saved {Path(path).name}"

    def on_copy_png() -> str:
        try:
            exporter.copy_raster_to_clipboard()
        except ExportFailure as exc:
            return str(exc)
        return "PNG copied to clipboard"

    def on_download_history(entry_id: Any) -> tuple[Optional[str], str]:
        entry = _entry_for(entry_id)
        if entry is None:
            return None, "Select a history item first."
        try:
            path = exporter.export_history_raster(entry)
        except ExportFailure as exc:
            return None, str(exc)
        return str(path), f"Saved {Path(path).name}"

    def on_clear_history() -> tuple[List[GalleryItem], Optional[int], str]:
        store.clear()
        shown_ids.clear()
        return [], None, "History cleared."

    return {
        "history_gallery": history_gallery,
        "on_select_history": on_select_history,
        "on_generate": on_generate,
        "on_use_history": on_use_history,
        "on_download_png": on_download_png,
        "on_download_svg": on_download_svg,
        "on_copy_png": on_copy_png,
        "on_download_history": on_download_history,
        "on_clear_history": on_clear_history,
    }

"""Gradio UI callback tests."""

from __future__ import annotations

import pytest

from config.settings import AppConfig
from modules.pipelines.encoder import OutputFormat
from modules.ui import callbacks


def build_callbacks(pipeline, exporter, config: AppConfig | None = None):
    return callbacks.build_callbacks(config or AppConfig(), pipeline=pipeline, exporter=exporter)


@pytest.mark.asyncio
async def test_on_generate_success(pipeline, exporter, history, encoder):
    cb = build_callbacks(pipeline, exporter)["on_generate"]

    image, gallery, message = await cb("https://example.com", 300, 2, "#000000", "#ffffff", "M")

    assert image is not None
    assert len(gallery) == 1
    assert gallery[0][1].startswith("https://example.com\n")
    assert "generated" in message
    options = encoder.calls[0][1]
    assert options.pixel_width == 300
    assert options.margin == 2


@pytest.mark.asyncio
async def test_on_generate_blank_content(pipeline, exporter, history):
    cb = build_callbacks(pipeline, exporter)["on_generate"]

    image, gallery, message = await cb("   ", 300, 2, "#000000", "#ffffff", "M")

    assert image is None
    assert gallery == []
    assert "Enter some content" in message
    assert len(history) == 0


@pytest.mark.asyncio
async def test_on_generate_failure_keeps_previous_preview(pipeline, exporter, encoder):
    cb = build_callbacks(pipeline, exporter)["on_generate"]
    await cb("first", 300, 2, "#000000", "#ffffff", "M")
    encoder.fail_on = OutputFormat.PNG

    image, gallery, message = await cb("second", 300, 2, "#000000", "#ffffff", "M")

    assert image is not None
    assert len(gallery) == 1
    assert "Failed to create QR code" in message
    assert pipeline.current.content == "first"


@pytest.mark.asyncio
async def test_on_generate_normalizes_picker_colors(pipeline, exporter, encoder):
    cb = build_callbacks(pipeline, exporter)["on_generate"]

    await cb("colors", 300, 2, "rgba(255, 0, 0, 1)", "rgba(0, 0, 255, 0.5)", "H")

    options = encoder.calls[0][1]
    assert options.dark_color == "#ff0000"
    assert options.light_color == "#0000ff80"


@pytest.mark.asyncio
async def test_on_generate_falls_back_to_defaults(pipeline, exporter, encoder):
    config = AppConfig(default_size=420, default_margin=1)
    cb = build_callbacks(pipeline, exporter, config)["on_generate"]

    await cb("defaults", None, "", None, None, None)

    options = encoder.calls[0][1]
    assert options.pixel_width == 420
    assert options.margin == 1
    assert options.dark_color == "#000000"
    assert options.error_correction_level.value == "M"


@pytest.mark.asyncio
async def test_on_use_history_replays_entry(pipeline, exporter, history):
    cb_map = build_callbacks(pipeline, exporter)
    await cb_map["on_generate"]("older", 300, 2, "#000000", "#ffffff", "M")
    await cb_map["on_generate"]("newer", 300, 2, "#000000", "#ffffff", "M")

    selected = cb_map["on_select_history"](1)
    content, image, gallery, message = await cb_map["on_use_history"](selected, 300, 2, "#000000", "#ffffff", "M")

    assert content == "older"
    assert image is not None
    assert [entry.text for entry in history.entries] == ["older", "newer", "older"]
    assert len(gallery) == 3


@pytest.mark.asyncio
async def test_on_use_history_without_selection(pipeline, exporter):
    cb = build_callbacks(pipeline, exporter)["on_use_history"]

    content, image, gallery, message = await cb(None, 300, 2, "#000000", "#ffffff", "M")

    assert content == ""
    assert image is None
    assert "Select a history item" in message


def test_on_download_png_requires_generation(pipeline, exporter, file_sink):
    cb = build_callbacks(pipeline, exporter)["on_download_png"]

    path, message = cb()

    assert path is None
    assert message == "Generate a QR first."
    assert file_sink.saved == []


@pytest.mark.asyncio
async def test_downloads_after_generation(pipeline, exporter, file_sink):
    cb_map = build_callbacks(pipeline, exporter)
    await cb_map["on_generate"]("download me", 256, 2, "#000000", "#ffffff", "M")

    png_path, png_message = cb_map["on_download_png"]()
    svg_path, svg_message = cb_map["on_download_svg"]()
    history_path, history_message = cb_map["on_download_history"](cb_map["on_select_history"](0))

    assert png_path.endswith("qr-256x256.png")
    assert svg_path.endswith("qr-256x256.svg")
    assert history_path.endswith(".png")
    assert "Saved" in png_message and "Saved" in svg_message and "Saved" in history_message


@pytest.mark.asyncio
async def test_on_copy_png_reports_outcome(pipeline, exporter, clipboard):
    cb_map = build_callbacks(pipeline, exporter)
    assert cb_map["on_copy_png"]() == "Generate a QR first."

    await cb_map["on_generate"]("copy", 300, 2, "#000000", "#ffffff", "M")
    assert cb_map["on_copy_png"]() == "PNG copied to clipboard"

    clipboard.error = PermissionError("denied")
    assert cb_map["on_copy_png"]() == "Copy failed."


@pytest.mark.asyncio
async def test_on_clear_history(pipeline, exporter, history, store):
    cb_map = build_callbacks(pipeline, exporter)
    await cb_map["on_generate"]("to clear", 300, 2, "#000000", "#ffffff", "M")

    gallery, selected, message = cb_map["on_clear_history"]()

    assert gallery == []
    assert selected is None
    assert len(history) == 0
    assert cb_map["history_gallery"]() == []
    assert "cleared" in message


@pytest.mark.asyncio
async def test_repeated_use_keeps_the_selected_entry(pipeline, exporter, history):
    cb_map = build_callbacks(pipeline, exporter)
    await cb_map["on_generate"]("older", 300, 2, "#000000", "#ffffff", "M")
    await cb_map["on_generate"]("newer", 300, 2, "#000000", "#ffffff", "M")
    selected = cb_map["on_select_history"](1)

    first, *_ = await cb_map["on_use_history"](selected, 300, 2, "#000000", "#ffffff", "M")
    second, *_ = await cb_map["on_use_history"](selected, 300, 2, "#000000", "#ffffff", "M")

    assert (first, second) == ("older", "older")
    assert [entry.text for entry in history.entries] == ["older", "older", "newer", "older"]


def test_on_select_history_out_of_range(pipeline, exporter):
    cb = build_callbacks(pipeline, exporter)["on_select_history"]

    assert cb(0) is None
    assert cb(None) is None


@pytest.mark.asyncio
async def test_on_generate_with_unknown_default_level(pipeline, exporter, encoder):
    cb = build_callbacks(pipeline, exporter, AppConfig(default_ec_level="X"))["on_generate"]

    image, gallery, message = await cb("hi", 300, 2, "#000000", "#ffffff", None)

    assert image is not None
    assert "generated" in message
    assert encoder.calls[0][1].error_correction_level.value == "M"

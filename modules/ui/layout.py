"""Gradio layout for the QR generator and its history."""

from __future__ import annotations

from typing import Any, Optional, Sequence

try:
    import gradio as gr
except ImportError:  # pragma: no cover
    gr = None  # type: ignore

from config.settings import AppConfig
from modules.pipelines.qr_options import ErrorCorrectionLevel
from modules.pipelines.qr_pipeline import QRGenerationService
from modules.services.export_service import DirectorySaveSink, ExportService
from modules.services.history_service import GenerationHistoryService
from modules.services.storage_service import JsonFileStore
from modules.ui.callbacks import build_callbacks


def _level_choices() -> Sequence[str]:
    return [level.value for level in ErrorCorrectionLevel]


def build_services(config: AppConfig) -> tuple[QRGenerationService, ExportService]:
    """Wire the store, history, pipeline and exporter from configuration."""
    history = GenerationHistoryService(JsonFileStore(config.store_path))
    history.load()
    pipeline = QRGenerationService(history)
    exporter = ExportService(pipeline, DirectorySaveSink(config.output_dir))
    return pipeline, exporter


def build_app(config: AppConfig) -> Any:
    """Compose and return the Gradio application."""
    if gr is None:
        raise RuntimeError("Gradio is not installed; install the project dependencies first.")

    pipeline, exporter = build_services(config)
    callbacks_map = build_callbacks(config, pipeline=pipeline, exporter=exporter)

    with gr.Blocks(title="QR Code Generator") as demo:
        gr.Markdown("## QR Code Generator — no expiry")
        gr.Markdown("Generate permanent QR codes (stored locally) — works completely offline.")

        with gr.Row():
            with gr.Column(scale=2):
                content = gr.Textbox(
                    label="QR Code Content",
                    lines=3,
                    value=config.default_content,
                )
                with gr.Row():
                    size = gr.Number(
                        label="Size (px)",
                        value=config.default_size,
                        minimum=64,
                        maximum=2000,
                        precision=0,
                    )
                    margin = gr.Number(
                        label="Margin",
                        value=config.default_margin,
                        minimum=0,
                        maximum=10,
                        precision=0,
                    )
                with gr.Row():
                    ec_level = gr.Dropdown(
                        label="Error Correction",
                        choices=list(_level_choices()),
                        value=config.default_ec_level,
                    )
                    dark_color = gr.ColorPicker(label="Dark Color", value=config.default_dark_color)
                    light_color = gr.ColorPicker(label="Light Color", value=config.default_light_color)

                with gr.Row():
                    generate_btn = gr.Button("Generate", variant="primary")
                    png_btn = gr.Button("Download PNG")
                    svg_btn = gr.Button("Download SVG")
                    copy_btn = gr.Button("Copy PNG")
                download_file = gr.File(label="Download", interactive=False)

            with gr.Column(scale=1):
                preview = gr.Image(label="QR Code", type="pil", interactive=False)
                status = gr.Markdown("QR preview will appear here")

        gr.Markdown("### History")
        history_gallery = gr.Gallery(
            label="History",
            value=callbacks_map["history_gallery"](),
            columns=3,
            allow_preview=False,
        )
        selected_id = gr.State(None)
        with gr.Row():
            use_btn = gr.Button("Use")
            history_download_btn = gr.Button("Download")
            clear_btn = gr.Button("Clear", variant="stop")

        form_inputs = [size, margin, dark_color, light_color, ec_level]

        def _remember_selection(evt: gr.SelectData) -> Optional[int]:
            return callbacks_map["on_select_history"](evt.index)

        history_gallery.select(fn=_remember_selection, inputs=None, outputs=selected_id)

        generate_btn.click(
            fn=callbacks_map["on_generate"],
            inputs=[content, *form_inputs],
            outputs=[preview, history_gallery, status],
        )
        png_btn.click(fn=callbacks_map["on_download_png"], inputs=None, outputs=[download_file, status])
        svg_btn.click(fn=callbacks_map["on_download_svg"], inputs=None, outputs=[download_file, status])
        copy_btn.click(fn=callbacks_map["on_copy_png"], inputs=None, outputs=status)
        use_btn.click(
            fn=callbacks_map["on_use_history"],
            inputs=[selected_id, *form_inputs],
            outputs=[content, preview, history_gallery, status],
        )
        history_download_btn.click(
            fn=callbacks_map["on_download_history"],
            inputs=selected_id,
            outputs=[download_file, status],
        )
        clear_btn.click(
            fn=callbacks_map["on_clear_history"],
            inputs=None,
            outputs=[history_gallery, selected_id, status],
        )

    return demo

"""Export generated QR codes to files and the system clipboard."""

from __future__ import annotations

import io
import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from modules.errors import ClipboardUnavailable, ExportFailure
from modules.pipelines.qr_pipeline import ArtifactPair, QRGenerationService
from modules.services.history_service import HistoryEntry
from modules.utils.image_utils import decode_data_url, verify_png

logger = logging.getLogger(__name__)

PNG_MIME = "image/png"
SVG_MIME = "image/svg+xml"
NO_ARTIFACT_MESSAGE = "Generate a QR first."
COPY_FAILED_MESSAGE = "Copy failed."


class FileSaveSink(Protocol):
    """Trigger a file save for a payload."""

    def save(self, payload: bytes, mime_type: str, filename: str) -> Path:
        ...


class ClipboardSink(Protocol):
    """Place an image on the system clipboard."""

    def write_image(self, mime_type: str, payload: bytes) -> None:
        ...


class DirectorySaveSink:
    """Save files into a fixed output directory."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def save(self, payload: bytes, mime_type: str, filename: str) -> Path:
        """Persist a payload and return the file path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / Path(filename).name
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=self.output_dir)
        try:
            with os.fdopen(fd, "wb") as fp:
                fp.write(payload)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Saved %s (%s, %d bytes)", target, mime_type, len(payload))
        return target


class CommandClipboard:
    """Pipe image data into ``wl-copy`` or ``xclip``."""

    def __init__(self, commands: Optional[Sequence[str]] = None) -> None:
        self.commands = list(commands or ("wl-copy", "xclip"))

    def _command_line(self, mime_type: str) -> List[str]:
        for name in self.commands:
            executable = shutil.which(name)
            if executable is None:
                continue
            if name == "wl-copy":
                return [executable, "--type", mime_type]
            if name == "xclip":
                return [executable, "-selection", "clipboard", "-t", mime_type, "-i"]
        raise ClipboardUnavailable("No clipboard tool found (install wl-clipboard or xclip).")

    def write_image(self, mime_type: str, payload: bytes) -> None:
        subprocess.run(self._command_line(mime_type), input=payload, check=True, timeout=10)


class ExportService:
    """Export the current artifacts or a stored history entry."""

    def __init__(
        self,
        pipeline: QRGenerationService,
        file_sink: FileSaveSink,
        clipboard: Optional[ClipboardSink] = None,
    ) -> None:
        self.pipeline = pipeline
        self.file_sink = file_sink
        self.clipboard: ClipboardSink = clipboard or CommandClipboard()

    def _require_current(self) -> ArtifactPair:
        current = self.pipeline.current
        if current is None:
            raise ExportFailure(NO_ARTIFACT_MESSAGE)
        return current

    def _save(self, payload: bytes, mime_type: str, filename: str) -> Path:
        try:
            return self.file_sink.save(payload, mime_type, filename)
        except OSError as exc:
            raise ExportFailure(f"Could not save {filename}: {exc}") from exc

    def export_raster(self) -> Path:
        """Save the current PNG as ``qr-{w}x{w}.png``."""
        current = self._require_current()
        try:
            payload = current.png_bytes()
        except ValueError as exc:
            raise ExportFailure(f"Could not decode PNG data: {exc}") from exc
        return self._save(payload, PNG_MIME, f"{current.export_basename()}.png")

    def export_vector(self) -> Path:
        """Save the current SVG as ``qr-{w}x{w}.svg``."""
        current = self._require_current()
        blob = io.BytesIO(current.svg_text.encode("utf-8"))
        try:
            return self._save(blob.getvalue(), SVG_MIME, f"{current.export_basename()}.svg")
        finally:
            blob.close()

    def export_history_raster(self, entry: HistoryEntry) -> Path:
        """Save a history entry's PNG as ``qr-{id}.png``."""
        try:
            _, payload = decode_data_url(entry.png_data_url)
        except ValueError as exc:
            raise ExportFailure(f"Could not decode PNG data: {exc}") from exc
        return self._save(payload, PNG_MIME, f"qr-{entry.id}.png")

    def copy_raster_to_clipboard(self) -> None:
        """Put the current PNG on the clipboard."""
        current = self._require_current()
        try:
            mime_type, payload = decode_data_url(current.png_data_url)
            verify_png(payload)
            self.clipboard.write_image(mime_type, payload)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Clipboard copy failed: %s", exc)
            raise ExportFailure(COPY_FAILED_MESSAGE) from exc

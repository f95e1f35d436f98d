"""Shared fixtures: in-memory store, stub encoder and wired services."""

from __future__ import annotations

import io
from pathlib import Path
from typing import List, Optional, Tuple

import pytest
from PIL import Image

from modules.pipelines.encoder import EncoderError, OutputFormat
from modules.pipelines.qr_options import EncodeOptions
from modules.pipelines.qr_pipeline import QRGenerationService
from modules.services.export_service import ExportService
from modules.services.history_service import GenerationHistoryService
from modules.services.storage_service import MemoryStore
from modules.utils.image_utils import to_data_url


def tiny_png(color: str = "black") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (2, 2), color).save(buffer, format="PNG")
    return buffer.getvalue()


class DummyEncoder:
    """Stub encoder capturing every call."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, EncodeOptions, OutputFormat]] = []
        self.fail_on: Optional[OutputFormat] = None

    def encode(self, content: str, options: EncodeOptions, fmt: OutputFormat) -> str:
        self.calls.append((content, options, fmt))
        if self.fail_on == fmt:
            raise EncoderError("code length overflow")
        if fmt == OutputFormat.PNG:
            return to_data_url(tiny_png())
        return f'<svg xmlns="http://www.w3.org/2000/svg"><desc>{content}</desc></svg>'


class DummyFileSink:
    """Record saves instead of touching the filesystem."""

    def __init__(self, root: Path = Path("exports")) -> None:
        self.root = root
        self.saved: List[Tuple[bytes, str, str]] = []
        self.error: Optional[Exception] = None

    def save(self, payload: bytes, mime_type: str, filename: str) -> Path:
        if self.error is not None:
            raise self.error
        self.saved.append((payload, mime_type, filename))
        return self.root / filename


class DummyClipboard:
    """Capture clipboard writes."""

    def __init__(self) -> None:
        self.writes: List[Tuple[str, bytes]] = []
        self.error: Optional[Exception] = None

    def write_image(self, mime_type: str, payload: bytes) -> None:
        if self.error is not None:
            raise self.error
        self.writes.append((mime_type, payload))


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def history(store: MemoryStore) -> GenerationHistoryService:
    service = GenerationHistoryService(store)
    service.load()
    return service


@pytest.fixture
def encoder() -> DummyEncoder:
    return DummyEncoder()


@pytest.fixture
def pipeline(history: GenerationHistoryService, encoder: DummyEncoder) -> QRGenerationService:
    return QRGenerationService(history, encoder=encoder)


@pytest.fixture
def file_sink() -> DummyFileSink:
    return DummyFileSink()


@pytest.fixture
def clipboard() -> DummyClipboard:
    return DummyClipboard()


@pytest.fixture
def exporter(pipeline: QRGenerationService, file_sink: DummyFileSink, clipboard: DummyClipboard) -> ExportService:
    return ExportService(pipeline, file_sink, clipboard)


@pytest.fixture
def sample_png() -> bytes:
    """The PNG payload every DummyEncoder raster artifact carries."""
    return tiny_png()

"""QR generation pipeline service implementation."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from modules.errors import EncodingFailure, ValidationSkip
from modules.pipelines.encoder import EncoderError, OutputFormat, QRCodeEncoder, QREncoder
from modules.pipelines.qr_options import EncodeOptions, QRConfiguration
from modules.services.history_service import GenerationHistoryService, HistoryEntry
from modules.utils.image_utils import decode_data_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ArtifactPair:
    """PNG and SVG renditions of the same symbol."""

    png_data_url: str
    svg_text: str
    content: str
    options: EncodeOptions
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def pixel_width(self) -> int:
        return self.options.pixel_width

    def png_bytes(self) -> bytes:
        """Return the decoded PNG payload."""
        _, payload = decode_data_url(self.png_data_url)
        return payload

    def export_basename(self) -> str:
        """File name stem encoding the configured dimensions."""
        return f"qr-{self.pixel_width}x{self.pixel_width}"


class QRGenerationService:
    """Turn a configuration into an artifact pair and record it in history."""

    def __init__(self, history: GenerationHistoryService, encoder: Optional[QREncoder] = None) -> None:
        self.history = history
        self.encoder: QREncoder = encoder or QRCodeEncoder()
        self._current: Optional[ArtifactPair] = None
        self._commit_lock = threading.Lock()

    @property
    def current(self) -> Optional[ArtifactPair]:
        """The most recent successful result, if any."""
        return self._current

    async def _encode(self, content: str, options: EncodeOptions, fmt: OutputFormat) -> str:
        try:
            return await asyncio.to_thread(self.encoder.encode, content, options, fmt)
        except (EncoderError, ValueError) as exc:
            raise EncodingFailure(f"Failed to create QR code: {exc}") from exc

    async def generate(self, config: QRConfiguration) -> ArtifactPair:
        """Encode ``config`` as PNG and SVG, make it current and log it to history.

        Raises ValidationSkip for blank content and EncodingFailure when the
        encoder rejects the content or options. Neither leaves any trace in
        the current artifacts or the history.
        """
        snapshot = config.snapshot()
        if not snapshot.is_encodable():
            raise ValidationSkip("Nothing to encode: content is empty.")

        try:
            options = snapshot.to_options()
        except ValueError as exc:
            raise EncodingFailure(f"Failed to create QR code: {exc}") from exc

        content = snapshot.content
        png_data_url = await self._encode(content, options, OutputFormat.PNG)
        svg_text = await self._encode(content, options, OutputFormat.SVG)

        pair = ArtifactPair(png_data_url=png_data_url, svg_text=svg_text, content=content, options=options)
        with self._commit_lock:
            self._current = pair
            self.history.insert_front(self.history.create_entry(content, png_data_url))
        logger.info(
            "Generated QR code (%d chars, level %s, %dpx)",
            len(content),
            options.error_correction_level.value,
            options.pixel_width,
        )
        return pair

    async def replay(self, entry: HistoryEntry, config: QRConfiguration) -> ArtifactPair:
        """Seed ``config`` with a history entry's text and generate again."""
        config.content = self.history.select_for_replay(entry)
        return await self.generate(config)

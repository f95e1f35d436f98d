"""Typed failures raised by the generation, history and export services."""

from __future__ import annotations


class QRStudioError(Exception):
    """Base class for failures surfaced to the presentation layer."""


class ValidationSkip(QRStudioError):
    """Generation declined because the content is empty or whitespace."""


class EncodingFailure(QRStudioError):
    """The encoder rejected the content or the options."""


class ExportFailure(QRStudioError):
    """A file save or clipboard write could not be performed."""


class ClipboardUnavailable(ExportFailure):
    """No clipboard backend is available on this machine."""


class PersistenceCorruption(QRStudioError):
    """The stored history payload could not be parsed."""

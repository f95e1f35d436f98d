"""Logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from config.settings import AppConfig

_QUIET_LOGGERS = ("PIL", "httpx")


def setup_logging(config: AppConfig, level: int = logging.INFO) -> logging.Logger:
    """Send records to ``log_dir/application.log`` and stderr, once per process.

    The CLI and the Gradio app both call this; a second call leaves the
    existing root handlers alone instead of opening another log file.
    """
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            handlers=[
                logging.FileHandler(log_dir / "application.log", encoding="utf-8"),
                logging.StreamHandler(),
            ],
        )
    # PNG decoding and Gradio's HTTP client are chatty at INFO.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logging.getLogger("qr_studio")

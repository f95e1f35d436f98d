"""Configuration helpers for the Offline QR Studio project."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from modules.pipelines.qr_options import ErrorCorrectionLevel, QRConfiguration


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    output_dir: Path = Path("outputs")
    log_dir: Path = Path("logs")
    store_path: Path = Path("logs/qr_store.json")
    default_content: str = "https://example.com"
    default_size: int = 300
    default_margin: int = 2
    default_dark_color: str = "#000000"
    default_light_color: str = "#ffffff"
    default_ec_level: str = "M"

    def default_configuration(self) -> QRConfiguration:
        """Return a fresh form state seeded from the configured defaults."""
        return QRConfiguration(
            content=self.default_content,
            pixel_size=self.default_size,
            margin=self.default_margin,
            dark_color=self.default_dark_color,
            light_color=self.default_light_color,
            error_correction_level=ErrorCorrectionLevel.parse(self.default_ec_level),
        )


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _ec_level_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return ErrorCorrectionLevel.parse(raw).value
    except ValueError:
        return default


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    defaults = AppConfig()
    log_dir = Path(os.getenv("QR_LOG_DIR", str(defaults.log_dir))).expanduser()
    store_env = os.getenv("QR_STORE_PATH")
    store_path = Path(store_env).expanduser() if store_env else log_dir / "qr_store.json"

    return AppConfig(
        output_dir=Path(os.getenv("QR_OUTPUT_DIR", str(defaults.output_dir))).expanduser(),
        log_dir=log_dir,
        store_path=store_path,
        default_content=os.getenv("QR_DEFAULT_CONTENT", defaults.default_content),
        default_size=_int_env("QR_DEFAULT_SIZE", defaults.default_size),
        default_margin=_int_env("QR_DEFAULT_MARGIN", defaults.default_margin),
        default_dark_color=os.getenv("QR_DARK_COLOR", defaults.default_dark_color),
        default_light_color=os.getenv("QR_LIGHT_COLOR", defaults.default_light_color),
        default_ec_level=_ec_level_env("QR_DEFAULT_EC_LEVEL", defaults.default_ec_level),
    )

"""
Timelapse Engine Configuration
==============================

This module handles configuration loading for the timelapse engine.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    TIMELAPSE_BASE_DIR       -> storage.base_dir
    TIMELAPSE_ORACLE_URL     -> oracle.base_url
    TIMELAPSE_ORACLE_TIMEOUT -> oracle.timeout_seconds
    TIMELAPSE_FRAME_DELAY_MS -> playback.frame_delay_ms
    TIMELAPSE_PORT           -> server.port
    TIMELAPSE_LOG_LEVEL      -> logging.level
    PORT                     -> server.port (container platforms)

Example:
    from timelapse_engine.config import load_config

    settings = load_config()
    print(settings.storage.base_dir)
    print(settings.export.canvas_width, settings.export.canvas_height)
"""

import os
import logging
from pathlib import Path
from typing import Optional, Tuple

import yaml
from pydantic import BaseModel, Field, model_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class StorageConfig(BaseModel):
    """Frame storage configuration."""

    base_dir: str = Field(
        default="./data/timelapse",
        description="Root directory holding one sub-directory per location",
    )
    image_extension: str = Field(
        default=".jpg",
        pattern=r"^\.[A-Za-z0-9]+$",
        description="Frame file extension",
    )


class OracleConfig(BaseModel):
    """Collaborator service client configuration."""

    base_url: str = Field(
        default="http://localhost:8002",
        description="Root URL of the collaborator service",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout",
    )
    probe_legacy_aliases: bool = Field(
        default=True,
        description="Also probe legacy filename spellings (noon '12')",
    )


class PrefetchConfig(BaseModel):
    """Prefetch cache policy."""

    initial_count: int = Field(
        default=20,
        ge=0,
        description="Frames warmed after each resolve (K)",
    )
    lookahead: int = Field(
        default=5,
        ge=0,
        description="Frames warmed ahead of the playback cursor (M)",
    )


class PlaybackConfig(BaseModel):
    """Playback timing configuration."""

    frame_delay_ms: int = Field(
        default=100,
        description="Initial delay between frames",
    )
    min_frame_delay_ms: int = Field(default=50, ge=1)
    max_frame_delay_ms: int = Field(default=1000, ge=1)

    @model_validator(mode="after")
    def validate_delay_range(self) -> "PlaybackConfig":
        """Ensure the initial delay lies inside the allowed range."""
        if self.min_frame_delay_ms > self.max_frame_delay_ms:
            raise ValueError("min_frame_delay_ms must not exceed max_frame_delay_ms")
        if not self.min_frame_delay_ms <= self.frame_delay_ms <= self.max_frame_delay_ms:
            raise ValueError(
                f"frame_delay_ms must be within "
                f"[{self.min_frame_delay_ms}, {self.max_frame_delay_ms}]"
            )
        return self


class ExportConfig(BaseModel):
    """Animated GIF export configuration."""

    canvas_width: int = Field(default=800, ge=1, le=4096)
    canvas_height: int = Field(default=600, ge=1, le=4096)
    quality: int = Field(
        default=10,
        ge=1,
        le=30,
        description="Quantization quality (1 best - 30 fastest)",
    )
    background: Tuple[int, int, int] = Field(
        default=(0, 0, 0),
        description="Letterbox padding colour (RGB)",
    )

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (self.canvas_width, self.canvas_height)


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the timelapse engine.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    storage: StorageConfig = Field(default_factory=StorageConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    prefetch: PrefetchConfig = Field(default_factory=PrefetchConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Storage settings
    if env_dir := os.environ.get("TIMELAPSE_BASE_DIR"):
        config_data.setdefault("storage", {})["base_dir"] = env_dir

    # Oracle client settings
    if env_url := os.environ.get("TIMELAPSE_ORACLE_URL"):
        config_data.setdefault("oracle", {})["base_url"] = env_url
    if env_timeout := os.environ.get("TIMELAPSE_ORACLE_TIMEOUT"):
        config_data.setdefault("oracle", {})["timeout_seconds"] = float(env_timeout)

    # Playback settings
    if env_delay := os.environ.get("TIMELAPSE_FRAME_DELAY_MS"):
        config_data.setdefault("playback", {})["frame_delay_ms"] = int(env_delay)

    # Server settings (container platforms use PORT)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("TIMELAPSE_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("TIMELAPSE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

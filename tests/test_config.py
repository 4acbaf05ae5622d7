"""
Configuration Tests
===================
"""

import pytest
from pydantic import ValidationError

from timelapse_engine.config import PlaybackConfig, Settings, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "TIMELAPSE_BASE_DIR",
        "TIMELAPSE_ORACLE_URL",
        "TIMELAPSE_ORACLE_TIMEOUT",
        "TIMELAPSE_FRAME_DELAY_MS",
        "TIMELAPSE_PORT",
        "TIMELAPSE_LOG_LEVEL",
        "PORT",
    ):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Tests for defaults and validation."""

    def test_defaults(self):
        settings = Settings()

        assert settings.oracle.base_url == "http://localhost:8002"
        assert settings.storage.image_extension == ".jpg"
        assert settings.prefetch.initial_count == 20
        assert settings.prefetch.lookahead == 5
        assert settings.playback.frame_delay_ms == 100
        assert settings.export.canvas_size == (800, 600)
        assert settings.export.quality == 10
        assert settings.server.port == 8002

    def test_delay_outside_range_rejected(self):
        with pytest.raises(ValidationError):
            PlaybackConfig(frame_delay_ms=20)

    def test_quality_range(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"export": {"quality": 0}})

    def test_extension_must_start_with_dot(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"storage": {"image_extension": "jpg"}})


class TestLoadConfig:
    """Tests for YAML and environment loading."""

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "storage:\n"
            "  base_dir: /srv/frames\n"
            "playback:\n"
            "  frame_delay_ms: 200\n"
            "export:\n"
            "  canvas_width: 640\n"
            "  canvas_height: 480\n"
        )

        settings = load_config(str(path))

        assert settings.storage.base_dir == "/srv/frames"
        assert settings.playback.frame_delay_ms == 200
        assert settings.export.canvas_size == (640, 480)

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(str(path)).server.port == 8002

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("storage:\n  base_dir: /srv/frames\n")
        monkeypatch.setenv("TIMELAPSE_BASE_DIR", "/mnt/frames")
        monkeypatch.setenv("TIMELAPSE_ORACLE_URL", "http://oracle:9000")
        monkeypatch.setenv("TIMELAPSE_FRAME_DELAY_MS", "500")
        monkeypatch.setenv("TIMELAPSE_LOG_LEVEL", "DEBUG")

        settings = load_config(str(path))

        assert settings.storage.base_dir == "/mnt/frames"
        assert settings.oracle.base_url == "http://oracle:9000"
        assert settings.playback.frame_delay_ms == 500
        assert settings.logging.level == "DEBUG"

    def test_port_precedence(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("")
        monkeypatch.setenv("TIMELAPSE_PORT", "9001")
        assert load_config(str(path)).server.port == 9001

        monkeypatch.setenv("PORT", "8080")
        assert load_config(str(path)).server.port == 8080

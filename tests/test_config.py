"""Tests for settings defaults and environment overrides."""

from pathlib import Path

from informejo.core.config import MagicLinkConfig, Settings, UploadConfig, get_settings, reload_settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("MAGIC_LINK_EXPIRY_HOURS", "UPLOAD_MAX_FILE_SIZE", "SERVER_PORT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()

        assert settings.magic_link.expiry_hours == 72
        assert settings.magic_link.token_bytes == 32
        assert settings.magic_link.short_id_min_length == 12
        assert settings.magic_link.short_id_max_length == 63
        assert settings.upload.max_file_size == 10 * 1024 * 1024
        assert settings.smtp.enabled is False

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("MAGIC_LINK_EXPIRY_HOURS", "24")
        monkeypatch.setenv("UPLOAD_UPLOAD_DIR", "/tmp/informejo-uploads")
        monkeypatch.setenv("APP_BASE_URL", "https://support.example.org")

        assert MagicLinkConfig().expiry_hours == 24
        assert UploadConfig().upload_dir == Path("/tmp/informejo-uploads")
        assert Settings().app.base_url == "https://support.example.org"

    def test_reload_settings_picks_up_environment(self, monkeypatch):
        monkeypatch.setenv("SERVER_PORT", "4010")
        try:
            assert reload_settings().server.port == 4010
            assert get_settings().server.port == 4010
        finally:
            monkeypatch.delenv("SERVER_PORT")
            reload_settings()

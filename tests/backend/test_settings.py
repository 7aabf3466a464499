"""
Tests für Settings

Testet:
- Defaults
- Parsing der kommagetrennten Werte
- Async Treiber in der Datenbank-URL
"""

import pytest

from utils.config import Settings, get_settings, settings


class TestSettings:
    """Tests für Settings"""

    @pytest.mark.unit
    def test_defaults(self, monkeypatch):
        """Test: Defaults ohne Umgebung"""
        for name in ("DATABASE_URL", "JWT_PUBLIC_KEY", "JWT_ALGORITHMS", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        config = Settings(_env_file=None)

        assert config.pairing_session_ttl_seconds == 600
        assert config.publisher_conflict_close_code == 4000
        assert config.jwt_public_key == ""
        assert config.jwt_algorithms_list == ["RS256"]
        assert config.cors_origins_list == ["*"]
        assert config.database_url.startswith("sqlite+aiosqlite://")

    @pytest.mark.unit
    def test_comma_separated_lists(self):
        config = Settings(
            _env_file=None,
            jwt_algorithms="RS256, ES256",
            cors_origins="https://a.example.com, https://b.example.com",
        )

        assert config.jwt_algorithms_list == ["RS256", "ES256"]
        assert config.cors_origins_list == ["https://a.example.com", "https://b.example.com"]

    @pytest.mark.unit
    def test_postgres_url_gets_async_driver(self):
        config = Settings(_env_file=None, database_url="postgresql://petube:secret@db:5432/petube")

        assert config.async_database_url == "postgresql+asyncpg://petube:secret@db:5432/petube"

    @pytest.mark.unit
    def test_get_settings_returns_global_instance(self):
        assert get_settings() is settings

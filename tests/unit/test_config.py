"""
Unit tests for configuration loading
"""
import pytest

from leadsync.core.config import ConfigManager, Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LEADSYNC_API_URL", "LEADSYNC_SOCKET_URL", "LEADSYNC_ENVIRONMENT",
                 "LEADSYNC_RECONNECTION_ATTEMPTS"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Tests for Settings"""

    @pytest.mark.parametrize("api_url,expected", [
        ("http://localhost:5000/api", "http://localhost:5000"),
        ("https://crm.example.com/api/", "https://crm.example.com"),
        ("https://crm.example.com", "https://crm.example.com"),
    ])
    def test_socket_url_derived_from_api_url(self, api_url, expected):
        settings = Settings(api_url=api_url, _env_file=None)

        assert settings.resolved_socket_url == expected

    def test_explicit_socket_url_wins(self):
        settings = Settings(api_url="http://a/api", socket_url="http://push.a", _env_file=None)

        assert settings.resolved_socket_url == "http://push.a"

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.reconnection_delay == 1.0
        assert settings.reconnection_attempts == 5
        assert settings.default_page_limit == 10
        assert settings.activity_page_limit == 50
        assert settings.performance_roles == ["Admin", "Manager"]


class TestConfigManager:
    """Tests for YAML loading"""

    def test_env_file_overrides_default(self, tmp_path):
        (tmp_path / "default.yaml").write_text(
            "push:\n  reconnection_attempts: 5\ncollections:\n  default_page_limit: 10\n"
        )
        (tmp_path / "staging.yaml").write_text("push:\n  reconnection_attempts: 10\n")

        config = ConfigManager(env="staging", config_dir=tmp_path)

        assert config.get("push.reconnection_attempts") == 10
        assert config.get("collections.default_page_limit") == 10
        assert config.get("collections.missing", "fallback") == "fallback"

    def test_env_var_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LEADSYNC_API_URL", "https://crm.example.com/api")
        (tmp_path / "default.yaml").write_text("api:\n  api_url: ${LEADSYNC_API_URL}\n")

        config = ConfigManager(config_dir=tmp_path)

        assert config.get("api.api_url") == "https://crm.example.com/api"

    def test_unresolved_placeholders_are_skipped(self, tmp_path):
        (tmp_path / "default.yaml").write_text(
            "api:\n  api_url: ${LEADSYNC_API_URL}\n  request_timeout: 5\n"
        )

        overrides = ConfigManager(config_dir=tmp_path).as_settings_overrides()

        assert overrides == {"request_timeout": 5}


class TestLoadSettings:

    def test_bundled_defaults(self):
        settings = load_settings()

        assert settings.environment == "development"
        assert settings.api_url == "http://localhost:5000/api"
        assert settings.transports == ["websocket", "polling"]

    def test_env_var_beats_yaml(self, tmp_path, monkeypatch):
        (tmp_path / "default.yaml").write_text("push:\n  reconnection_attempts: 2\n")
        monkeypatch.setenv("LEADSYNC_RECONNECTION_ATTEMPTS", "9")

        settings = load_settings(config_dir=tmp_path)

        assert settings.reconnection_attempts == 9

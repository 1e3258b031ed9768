"""Tests for the uvicorn launcher options."""

from run_web import uvicorn_options


class TestUvicornOptions:
    """Tests for server options derived from the environment."""

    def test_frame_cap_applied_at_protocol_layer(self):
        assert uvicorn_options()["ws_max_size"] == 1024

    def test_frame_cap_follows_setting(self, monkeypatch):
        monkeypatch.setenv("WS_MAX_INBOUND_MESSAGE_BYTES", "2048")
        assert uvicorn_options()["ws_max_size"] == 2048

    def test_host_and_port_from_env(self, monkeypatch):
        monkeypatch.setenv("HOST", "0.0.0.0")
        monkeypatch.setenv("PORT", "9100")

        options = uvicorn_options()

        assert options["host"] == "0.0.0.0"
        assert options["port"] == 9100
        assert options["factory"] is True

    def test_reload_only_in_development(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "production")
        assert uvicorn_options()["reload"] is False

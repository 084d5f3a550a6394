"""Test configuration."""

from herald.config import Settings

def test_config_loading():
    # Test defaults
    settings = Settings()
    assert settings.webhook.timeout == 30
    assert settings.webhook.user_agent.startswith("Herald")

    # Test nested structure
    assert settings.templates.external_url.startswith("http")
    assert settings.secrets.secret_key

def test_config_from_env(monkeypatch):
    monkeypatch.setenv("HERALD_EXTERNAL_URL", "https://alerts.example.com/")
    monkeypatch.setenv("HERALD_WEBHOOK_TIMEOUT", "5")

    from herald.config import TemplateSettings, WebhookSettings

    assert TemplateSettings().external_url == "https://alerts.example.com/"
    assert WebhookSettings().timeout == 5

"""Configuration settings for Herald."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class TemplateSettings(BaseSettings):
    external_url: str = Field("http://localhost:3000/", validation_alias="HERALD_EXTERNAL_URL")

class WebhookSettings(BaseSettings):
    timeout: float = Field(30, validation_alias="HERALD_WEBHOOK_TIMEOUT")
    user_agent: str = Field("Herald/0.1", validation_alias="HERALD_WEBHOOK_USER_AGENT")

class SecretSettings(BaseSettings):
    secret_key: str = Field("herald-dev-secret-change-in-production", validation_alias="HERALD_SECRET_KEY")

class Settings(BaseSettings):
    """Global Application Settings."""
    templates: TemplateSettings = TemplateSettings()
    webhook: WebhookSettings = WebhookSettings()
    secrets: SecretSettings = SecretSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore"
    )

settings = Settings()

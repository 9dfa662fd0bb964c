"""Configuration management for the try-on pipeline."""

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiConfig(BaseModel):
    """Gemini model selection."""
    text_model: str = "gemini-2.5-flash"  # size classification
    image_model: str = "gemini-2.5-flash-image"  # composite generation
    temperature: float = 0.0


class RetryConfig(BaseModel):
    """Backoff policy for backend calls."""
    retries: int = Field(default=2, ge=0)  # extra attempts after the first
    base_delay: float = Field(default=2.0, ge=0.0)  # seconds, doubled per retry


class ImageConfig(BaseModel):
    """Normalization and product-image proxy settings."""
    size_estimate_max_dimension: int = 800
    tryon_max_dimension: int = 1024
    jpeg_quality: int = Field(default=70, ge=1, le=95)

    proxy_url: str = "https://images.weserv.nl/"
    proxy_width: int = 1024
    proxy_format: str = "jpg"
    proxy_jpeg_quality: int = Field(default=80, ge=1, le=95)
    fetch_timeout: float = 30.0


class PipelineConfig(BaseSettings):
    """Main pipeline configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FITTING_ROOM_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Sub-configs
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    image: ImageConfig = Field(default_factory=ImageConfig)

    # Pause between size estimation and rendering, for perceived progress only
    pacing_delay: float = Field(default=1.0, ge=0.0)

    # Credential-gated variant: an explicitly selected key is required
    requires_key_selection: bool = False

    log_level: str = "INFO"
    log_json: bool = False


class ApiKeySettings(BaseSettings):
    """Backend credential, read from the environment on every instantiation."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
    )


def load_config() -> PipelineConfig:
    """Load configuration from environment and defaults."""
    return PipelineConfig()

"""Configuration management for s3lite."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    log_level: str = "INFO"
    otel_enabled: bool = False
    otel_service_name: str = "s3lite"

    default_region: str = "us-east-1"
    request_timeout: float = 60.0

    # Delay-retry backoff (seconds)
    retry_base_delay: float = 0.05
    retry_max_delay: float = 10.0

    multipart_part_size_mb: int = 50
    presign_expires: int = 3600

    model_config = {
        "env_prefix": "S3LITE_",
        "case_sensitive": False,
    }


settings = Settings()

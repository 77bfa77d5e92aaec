# convert_server/config.py
import warnings
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./convert.db"
    redis_url: str = ""  # Empty disables per-key throttling
    jwt_secret: str = ""  # Required for session tokens
    jwt_expiry_seconds: int = 7 * 86400
    log_level: str = "INFO"

    # Artifacts
    upload_dir: str = "./uploads"
    max_upload_mb: int = 200

    # Dispatcher
    max_concurrent_jobs: int = 4
    simulated_processing_seconds: float = 0.0

    # Gateway limits
    api_key_requests_per_minute: int = 60
    max_api_keys_per_user: int = 3
    allow_anonymous_conversion: bool = False

    cors_origins: list[str] = ["*"]

    def validate_secrets(self) -> None:
        """Validate that required secrets are configured.

        Call this at application startup to fail fast if secrets are missing.
        """
        if not self.jwt_secret:
            raise ValueError(
                "Required secret not configured: JWT_SECRET. "
                "Set this environment variable before starting the server."
            )


def get_settings() -> Settings:
    settings = Settings()
    if not settings.jwt_secret:
        warnings.warn(
            "JWT_SECRET not configured. The server will fail to start.",
            UserWarning,
        )
    return settings

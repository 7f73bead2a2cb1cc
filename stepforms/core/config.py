"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: major.minor.patch)
    VERSION: str = "0.1.0"

    LOG_LEVEL: str = "INFO"

    # Database (PostgreSQL in production, SQLite for local dev and tests)
    DATABASE_URL: str = "sqlite:///./stepforms.db"

    # Admin dashboard access. Empty disables the check in dev only.
    ADMIN_API_TOKEN: str = ""

    # Internal scheduled endpoints (cron jobs)
    INTERNAL_SECRET: str = ""  # Secret for /internal/scheduled/* endpoints

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Blob storage
    STORAGE_BACKEND: str = "local"  # "local" or "s3"
    LOCAL_STORAGE_PATH: str = "/tmp/stepforms-files"
    S3_BUCKET: str = "stepforms-files"
    S3_REGION: str = ""
    S3_ENDPOINT_URL: str = ""
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    SIGNED_URL_EXPIRY_SECONDS: int = 3600
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Uploaded files never referenced by a submission are swept after this age
    ORPHAN_FILE_MAX_AGE_HOURS: int = 24

    # Publishing retries when two publishes race for the same version number
    PUBLISH_MAX_ATTEMPTS: int = 3

    # Rate Limiting (requests per minute)
    RATE_LIMIT_PUBLIC_SUBMIT: int = 10

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def admin_auth_required(self) -> bool:
        """Admin token is mandatory everywhere except an unconfigured dev setup."""
        return bool(self.ADMIN_API_TOKEN) or self.ENV != "dev"


settings = Settings()

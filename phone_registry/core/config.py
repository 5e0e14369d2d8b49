"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str

    # Operator bearer tokens (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 8

    # Revoked token storage: "database" or "redis"
    REVOCATION_BACKEND: str = "database"
    REDIS_URL: str = ""

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend base for verification links ({base}/verify-numbers?token=...)
    FRONTEND_BASE_URL: str = "http://localhost:3000"

    # Verification campaigns
    VERIFICATION_DEFAULT_DURATION_DAYS: int = 7
    VERIFICATION_MAX_DURATION_DAYS: int = 30

    # Email (Resend). Empty API key = dry run, emails are logged only
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "noreply@example.com"
    EMAIL_FROM_NAME: str = "Phone Registry"
    EMAIL_SEND_TIMEOUT_SECONDS: float = 20.0

    # Background worker
    WORKER_POLL_INTERVAL_SECONDS: int = 10
    WORKER_BATCH_SIZE: int = 10
    WORKER_CONCURRENCY: int = 4
    WORKER_STALE_JOB_MINUTES: int = 30
    RUN_EMBEDDED_WORKER: bool = False  # Single-process deployments

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_PUBLIC: int = 30  # Verification link endpoints
    RATE_LIMIT_API: int = 120  # General API

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()

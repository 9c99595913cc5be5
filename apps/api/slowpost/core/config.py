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

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 4

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Internal scheduled endpoints (delivery sweep cron)
    INTERNAL_SECRET: str = ""

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate limiting storage; empty or "memory://" keeps counters in-process
    REDIS_URL: str = ""
    RATE_LIMIT_LOOKUP: str = "10/hour"  # Identifier lookups per IP
    RATE_LIMIT_SEND: str = "5/hour"  # Send attempts per user, on top of the daily quota
    RATE_LIMIT_FAIL_OPEN: bool = True  # Limiter outage never blocks sending

    # Delivery rules
    DAILY_SEND_LIMIT: int = 3  # Letters per sender-local calendar day
    UNDELIVERABLE_AFTER_DAYS: int = 3  # Unresolved letters expire after this
    DELETION_GRACE_DAYS: int = 30  # Deletion hold length before purge

    # Worker
    SWEEP_INTERVAL_SECONDS: int = 300

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


settings = Settings()

"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # Portal tokens (impersonation + active client), supports key rotation
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    IMPERSONATION_TTL_HOURS: int = 4
    ACTIVE_CLIENT_TTL_DAYS: int = 30

    # Identity provider session tokens
    # HS256 verifies with JWT_SECRET(_PREVIOUS); RS256 verifies with the
    # provider's PEM public key in SESSION_JWT_KEY.
    SESSION_JWT_ALGORITHM: str = "HS256"
    SESSION_JWT_KEY: str = ""

    # Clerk backend API
    CLERK_SECRET_KEY: str = ""
    CLERK_API_URL: str = "https://api.clerk.com/v1"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (billing portal return URL, admin links)
    FRONTEND_URL: str = "http://localhost:3000"

    # Stripe billing
    STRIPE_SECRET_KEY: str = ""

    # Help Scout support
    HELPSCOUT_APP_ID: str = ""
    HELPSCOUT_APP_SECRET: str = ""
    HELPSCOUT_MAILBOX_ID: str = ""

    # Umami analytics
    UMAMI_BASE_URL: str = ""
    UMAMI_API_TOKEN: str = ""

    # Uptime Kuma
    UPTIME_KUMA_BASE_URL: str = ""
    UPTIME_KUMA_API_TOKEN: str = ""

    INTEGRATION_TIMEOUT_SECONDS: float = 10.0

    # Resend (form submission notifications)
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = ""

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 120
    RATE_LIMIT_PUBLIC_SUBMIT: int = 10
    RATE_LIMIT_IMPERSONATE: int = 20
    RATE_LIMIT_STORAGE_URI: str = "memory://"

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
    def session_keys(self) -> list[str]:
        """Keys accepted for provider session tokens."""
        if self.SESSION_JWT_ALGORITHM.upper().startswith("HS"):
            return self.jwt_secrets
        return [self.SESSION_JWT_KEY] if self.SESSION_JWT_KEY else []

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only in production."""
        return self.ENV != "dev"


settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Aerive Reservations API"
    # Comma-separated origins for CORS. If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Booking/listing/user store and billing ledger. The ledger shares the main database unless configured.
    DATABASE_URL: str
    BILLING_DATABASE_URL: str = ""

    @field_validator("DATABASE_URL", "BILLING_DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v

    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = False
    CACHE_TTL_SECONDS: int = 300

    # Card vault: process-wide secret, must be identical on every instance.
    CARD_ENCRYPTION_KEY: str
    # Development test PANs skip the Luhn check. Off by default in production.
    ACCEPT_TEST_CARDS: bool | None = None

    HOLD_MINUTES: int = 15
    COMPENSATION_ATTEMPTS: int = 3
    EXPIRE_SWEEP_SECONDS: float = 60.0
    CELERY_TIMEZONE: str = "UTC"

    @model_validator(mode="after")
    def _defaults(self):
        if not self.BILLING_DATABASE_URL:
            self.BILLING_DATABASE_URL = self.DATABASE_URL
        if self.ACCEPT_TEST_CARDS is None:
            self.ACCEPT_TEST_CARDS = self.ENV.lower() != "production"
        return self


settings = Settings()

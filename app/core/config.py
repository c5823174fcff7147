"""
Centralized application configuration implementing the 12-Factor App methodology.
Every tunable (database, tokens, rate limit thresholds) is read from the environment.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Immutable configuration schema backed by environment variables."""

    APP_NAME: str = "Comarc Fluxo"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Any SQLAlchemy URL (PostgreSQL in production, SQLite locally)
    DATABASE_URL: str = "sqlite:///./comarc_fluxo.db"

    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080

    LOG_LEVEL: str = "INFO"

    # Sliding window for login/signup throttling
    RATE_LIMIT_WINDOW_MINUTES: int = 15
    RATE_LIMIT_LOGIN_MAX_ATTEMPTS: int = 5
    RATE_LIMIT_SIGNUP_MAX_ATTEMPTS: int = 3

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()

"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Restaurant POS API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    log_level: str = getenv("LOG_LEVEL", "INFO").upper()
    database_url: str = getenv("DATABASE_URL", "sqlite:///./pos.db")
    store_timeout_seconds: float = float(getenv("STORE_TIMEOUT_SECONDS", "5"))
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "60"))
    default_prep_time_minutes: int = int(getenv("DEFAULT_PREP_TIME_MINUTES", "10"))
    notification_queue_size: int = int(getenv("NOTIFICATION_QUEUE_SIZE", "100"))
    seed_demo_data: bool = getenv("SEED_DEMO_DATA", "0") == "1"
    admin_email: str = getenv("ADMIN_EMAIL", "admin@example.com")
    admin_password: str = getenv("ADMIN_PASSWORD", "admin123")


settings: Settings = Settings()

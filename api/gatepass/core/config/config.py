from typing import List, Optional
from pydantic import PositiveInt, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Kolkata"
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:4173",
    ]

    # DB pieces
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "gatepass"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"

    # Optional full DSN; if unset we build one from the pieces above
    DATABASE_URL: Optional[str] = None

    # Auth
    JWT_SECRET: SecretStr = SecretStr("gatepassdev")
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_MIN: PositiveInt = 24 * 60

    # Mail
    NOTIFICATIONS_ENABLED: bool = True
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USE_SSL: bool = True
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[SecretStr] = None
    SMTP_FROM: str = "noreply@gatepass.com"
    SMTP_TIMEOUT_SECONDS: float = 10.0

    # Workflow
    TRACKING_CODE_ATTEMPTS: PositiveInt = 10
    PUNCTUALITY_GRACE_MINUTES: int = 15
    ENFORCE_STEP_ORDER: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,   # read env vars case-insensitively
        extra="ignore",
    )

    def effective_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

settings = Settings()

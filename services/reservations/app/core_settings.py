from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "medifind"
    POSTGRES_USER: str = "medifind"
    POSTGRES_PASSWORD: str = "medifind"
    # full SQLAlchemy URL, takes precedence over the POSTGRES_* parts
    DATABASE_URL: Optional[str] = None
    RUN_MIGRATIONS: bool = True

    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"

    SWEEPER_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: float = 60.0
    CRON_SECRET: Optional[str] = None

    ADMIN_EMAIL: str = "admin@medifind.com"
    ADMIN_NAME: str = "System Administrator"

    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    SERVICE_VERSION: str = "1.0.0"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()

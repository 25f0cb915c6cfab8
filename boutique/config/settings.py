from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "boutique"
    DEBUG: bool = True

    DB_URL: str = "sqlite+aiosqlite:///./boutique.db"

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 30
    refresh_token_rotation: bool = True

    def get_auth_data(self):
        return {
            'secret_key': self.secret_key,
            'algorithm': self.algorithm
        }

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent / ".env", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()

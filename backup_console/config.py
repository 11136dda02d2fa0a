import os

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "backup-console"
    APP_VERSION: str = "1.0.0"
    SECRET_KEY: str = "dev-secret-key-change-me"
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///backups.db"
    ROOT_PATH: str = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
    EXPORT_DIR: str = "exports"
    LOG_LEVEL: str = "INFO"
    SESSION_COOKIE_SAMESITE: str = "lax"
    SESSION_COOKIE_SECURE: bool = False
    MAX_CONSOLES: int = 512


settings = Settings()

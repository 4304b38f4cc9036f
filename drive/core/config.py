# drive/core/config.py
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Where the catalog snapshot and its backups live
    data_dir: Path = Path("data")
    catalog_file: str = "db.json"

    # Blob storage: "local" keeps one file per ref under files_dir,
    # "s3" keeps one object per ref under aws_s3_prefix
    blob_backend: Literal["local", "s3"] = "local"
    files_dir: Path = Path("files")

    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_region: str | None = None
    aws_s3_bucket_name: str | None = None
    aws_s3_prefix: str = "files/"

    # Seeded into a fresh catalog
    admin_username: str = "admin"
    admin_password: str = "password"
    admin_display_name: str = "Administrator"

    allowed_extensions: list[str] = [".js", ".png"]

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_json: bool = True

    # Tell pydantic-settings to load from .env at project root
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore any extra stuff in .env
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        # LOG_LEVEL=debug is as good as LOG_LEVEL=DEBUG
        return value.upper() if isinstance(value, str) else value

    @property
    def catalog_path(self) -> Path:
        return self.data_dir / self.catalog_file


@lru_cache
def get_settings() -> Settings:
    return Settings()

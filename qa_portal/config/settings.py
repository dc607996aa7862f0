from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


BlobStorage = Literal["inline", "filesystem"]


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "qa_portal"
    db_username: str = "qa_portal"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    admin_api_key: str = ""

    upload_root_candidates: list[str] = [
        "/var/lib/qa-portal/uploads",
        "/tmp/qa-portal/uploads",
        "uploads",
    ]
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_mime_types: list[str] = ["application/pdf"]
    stream_chunk_bytes: int = 64 * 1024

    notice_storage: BlobStorage = "inline"
    survey_storage: BlobStorage = "filesystem"
    minutes_storage: BlobStorage = "inline"

    http_host: str = "0.0.0.0"
    http_port: int = 5000
    cors_origins: list[str] = ["*"]

    def storage_for(self, kind_name: str) -> BlobStorage:
        """Return the configured blob storage variant for a record kind."""
        return getattr(self, f"{kind_name}_storage")

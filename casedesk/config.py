from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from urllib.parse import quote_plus
import os


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Database Configuration
    database_url: Optional[str] = None
    postgres_user: Optional[str] = None
    postgres_password: Optional[str] = None
    postgres_host: Optional[str] = None
    postgres_port: int = 5432
    postgres_database: Optional[str] = None
    sqlite_fallback_path: str = "./casedesk.db"

    # Blob Storage Configuration
    storage_backend: str = "local"  # "local" or "s3"
    blob_storage_path: str = "./blob_storage"
    # Local blobs are served here without authentication; the random key prefix is the only guard.
    # Use /documents/{id}/download for access that requires a token.
    blob_public_url: str = "/blobs"
    s3_bucket_name: str = "casedesk-documents"
    s3_region_name: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None

    # Document Upload Configuration
    max_upload_size_mb: int = 10
    allowed_document_types: List[str] = [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "image/jpeg",
        "image/png",
    ]

    # Claude API Configuration
    anthropic_api_key: Optional[str] = None
    claude_model: str = "claude-3-5-sonnet-latest"
    summary_max_tokens: int = 1024
    summary_temperature: float = 0.2

    # Application Configuration
    secret_key: str = "change_me_in_production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    default_admin_username: str = "admin"
    default_admin_email: str = "admin@casedesk.local"
    default_admin_password: str = "admin12345"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    cors_origins: List[str] = ["*"]

    @property
    def sqlalchemy_database_url(self) -> str:
        """Resolve the connection string: DATABASE_URL, then POSTGRES_* parts, then SQLite."""
        if self.database_url:
            # Heroku-style URLs use the scheme SQLAlchemy dropped
            if self.database_url.startswith("postgres://"):
                return self.database_url.replace("postgres://", "postgresql://", 1)
            return self.database_url

        if self.postgres_host and self.postgres_user and self.postgres_database:
            password = quote_plus(self.postgres_password or "")
            url = (
                f"postgresql://{self.postgres_user}:{password}"
                f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_database}"
            )
            if self.postgres_host != "localhost":
                url += "?sslmode=require"
            return url

        return f"sqlite:///{self.sqlite_fallback_path}"

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


# Global settings instance
settings = Settings()

# Ensure required directories exist
if settings.storage_backend == "local":
    os.makedirs(settings.blob_storage_path, exist_ok=True)

"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database settings
    database_url: Optional[str] = None  # Overrides the individual db_* parts when set
    db_host: str = "localhost"
    db_port: str = "5432"
    db_user: str = "user"
    db_password: str = "password"
    db_name: str = "dbname"

    # JWT settings
    jwt_secret_key: str = "change-this-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    # Object storage settings (S3-compatible endpoint of the backend)
    storage_endpoint_url: Optional[str] = None
    storage_region: str = "us-east-1"
    storage_bucket: str = "student-notes"
    storage_access_key_id: Optional[str] = None
    storage_secret_access_key: Optional[str] = None
    use_in_memory_storage: bool = False
    signed_url_expires_in: int = 3600  # seconds

    # File upload settings
    max_file_size: int = 10 * 1024 * 1024  # bytes
    allowed_file_types: str = "pdf,docx,pptx,jpg,jpeg,png,gif"

    # College / branding settings
    college_name: str = "Your College"
    college_email_domain: Optional[str] = None
    brand_logo_url: Optional[str] = None

    # Notes browsing settings
    notes_per_page: int = 12
    random_suggestion_limit: int = 24
    search_debounce_ms: int = 300

    # Default user settings
    default_admin_email: Optional[str] = None
    default_admin_password: Optional[str] = None
    force_reset_password_admin: bool = False

    # Application settings
    app_name: str = "Student Notes Hub"
    app_version: str = "0.1.0"
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    enable_request_logging: bool = True
    enable_sql_logging: bool = False
    enable_file_logging: bool = False
    log_directory: str = "logs"
    log_file_max_size_mb: int = 10
    log_file_backup_count: int = 5
    log_rotation_when: str = "size"  # "size" or a TimedRotatingFileHandler interval such as "midnight"
    log_rotation_interval: int = 1
    log_compression: bool = True
    app_log_file: str = "app.log"
    error_log_file: str = "error.log"
    security_log_file: str = "security.log"
    database_log_file: str = "database.log"
    storage_log_file: str = "storage.log"
    access_log_file: str = "access.log"

    # Security settings
    enable_security_headers: bool = True
    enable_request_size_limit: bool = True
    max_request_size_bytes: int = 100 * 1024 * 1024  # 100MB, batch uploads carry several files
    request_timeout_seconds: int = 300  # 5 minutes

    # Monitoring settings
    enable_health_checks: bool = True
    health_check_timeout: int = 30

    @property
    def sqlalchemy_database_url(self) -> str:
        """Async database URL, built from individual components unless DATABASE_URL is set."""
        if self.database_url:
            url = self.database_url
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def sync_database_url(self) -> str:
        """Blocking-driver variant of the database URL, used by the admin scripts."""
        return (
            self.sqlalchemy_database_url
            .replace("postgresql+asyncpg://", "postgresql://", 1)
            .replace("sqlite+aiosqlite://", "sqlite://", 1)
        )

    @property
    def allowed_extensions(self) -> List[str]:
        """Allowed upload extensions, lower-cased and without dots."""
        return [
            ext.strip().lower().lstrip(".")
            for ext in self.allowed_file_types.split(",")
            if ext.strip()
        ]

    @property
    def has_storage_credentials(self) -> bool:
        """Whether elevated (service) storage credentials are configured."""
        return self.use_in_memory_storage or bool(
            self.storage_access_key_id and self.storage_secret_access_key
        )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()


# Display defaults for joined note records
DEFAULT_SUBJECT_NAME = "General"
DEFAULT_SUBJECT_COLOR = "#3B82F6"
DEFAULT_UPLOADER_NAME = "Anonymous"
DEFAULT_COLLEGE_DOMAIN = "general"

"""Configuration management with validation and environment support."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional

from dotenv import load_dotenv


@dataclass
class StoreConfig:
    """Document store configuration."""
    backend: str = "firestore"  # firestore, memory
    project_id: Optional[str] = None
    credentials_path: Optional[str] = None
    database: str = "(default)"

    def validate(self) -> List[str]:
        """Validate document store configuration."""
        errors = []

        if self.backend not in ("firestore", "memory"):
            errors.append("store backend must be one of: firestore, memory")

        if self.backend == "firestore" and not self.project_id:
            errors.append("project_id is required for the firestore backend")

        return errors


@dataclass
class BlobConfig:
    """Blob store configuration."""
    backend: str = "gcs"  # gcs, memory
    bucket: Optional[str] = None
    credentials_path: Optional[str] = None
    signed_url_expiry_minutes: int = 15

    def validate(self) -> List[str]:
        """Validate blob store configuration."""
        errors = []

        if self.backend not in ("gcs", "memory"):
            errors.append("blob backend must be one of: gcs, memory")

        if self.backend == "gcs" and not self.bucket:
            errors.append("bucket is required for the gcs backend")

        if self.signed_url_expiry_minutes <= 0:
            errors.append("signed_url_expiry_minutes must be positive")

        return errors


@dataclass
class ExportConfig:
    """Export subsystem configuration."""
    # Local fallback for admin export settings when the store is unreachable
    cache_path: Path = field(default_factory=lambda: Path("data/admin_settings_cache.json"))

    # Image fetching
    image_fetch_timeout: int = 30
    image_fetch_concurrency: int = 4

    # Uploads
    max_upload_size: int = 10 * 1024 * 1024  # 10MB
    allowed_upload_types: List[str] = field(default_factory=lambda: ["image/*"])

    def validate(self) -> List[str]:
        """Validate export configuration."""
        errors = []

        if self.image_fetch_timeout <= 0:
            errors.append("image_fetch_timeout must be positive")

        if self.image_fetch_concurrency <= 0:
            errors.append("image_fetch_concurrency must be positive")

        if self.max_upload_size <= 0:
            errors.append("max_upload_size must be positive")

        return errors


@dataclass
class AuthConfig:
    """Privileged account functions configuration."""
    backend: str = "functions"  # functions, memory
    functions_base_url: Optional[str] = None
    functions_token: Optional[str] = None
    timeout: int = 30

    def validate(self) -> List[str]:
        """Validate auth configuration."""
        errors = []

        if self.backend == "functions" and not self.functions_base_url:
            errors.append("functions_base_url is required for the functions backend")

        return errors


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_dir: Optional[Path] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5

    def validate(self) -> List[str]:
        """Validate logging configuration."""
        errors = []

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            errors.append(f"log_level must be one of: {', '.join(valid_levels)}")

        if self.max_file_size <= 0:
            errors.append("max_file_size must be positive")

        if self.backup_count < 0:
            errors.append("backup_count must be non-negative")

        return errors


@dataclass
class ApiConfig:
    """Admin API configuration."""
    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173"
    ])

    def validate(self) -> List[str]:
        """Validate API configuration."""
        errors = []

        if not (1 <= self.port <= 65535):
            errors.append("port must be between 1 and 65535")

        return errors


class Settings:
    """Settings manager built from the environment."""

    def __init__(self, env_file: Optional[Path] = None):
        self.project_root = Path(__file__).parent.parent.parent
        self.env_file = env_file or self.project_root / ".env"

        # Load environment variables
        if self.env_file.exists():
            load_dotenv(self.env_file)

        # Initialize configuration sections
        self.store = self._load_store_config()
        self.blob = self._load_blob_config()
        self.export = self._load_export_config()
        self.auth = self._load_auth_config()
        self.logging = self._load_logging_config()
        self.api = self._load_api_config()

    def _load_store_config(self) -> StoreConfig:
        """Load document store configuration from environment."""
        return StoreConfig(
            backend=os.getenv("STORE_BACKEND", "firestore"),
            project_id=os.getenv("FIREBASE_PROJECT_ID"),
            credentials_path=os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
            database=os.getenv("FIRESTORE_DATABASE", "(default)")
        )

    def _load_blob_config(self) -> BlobConfig:
        """Load blob store configuration from environment."""
        return BlobConfig(
            backend=os.getenv("BLOB_BACKEND", "gcs"),
            bucket=os.getenv("FIREBASE_STORAGE_BUCKET"),
            credentials_path=os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
            signed_url_expiry_minutes=self._get_int("SIGNED_URL_EXPIRY_MINUTES", 15)
        )

    def _load_export_config(self) -> ExportConfig:
        """Load export configuration from environment."""
        return ExportConfig(
            cache_path=Path(os.getenv("ADMIN_SETTINGS_CACHE", "data/admin_settings_cache.json")),
            image_fetch_timeout=self._get_int("IMAGE_FETCH_TIMEOUT", 30),
            image_fetch_concurrency=self._get_int("IMAGE_FETCH_CONCURRENCY", 4),
            max_upload_size=self._get_int("MAX_UPLOAD_SIZE", 10 * 1024 * 1024),
            allowed_upload_types=self._get_list("ALLOWED_UPLOAD_TYPES", ["image/*"])
        )

    def _load_auth_config(self) -> AuthConfig:
        """Load account functions configuration from environment."""
        return AuthConfig(
            backend=os.getenv("AUTH_BACKEND", "functions"),
            functions_base_url=os.getenv("FUNCTIONS_BASE_URL"),
            functions_token=os.getenv("FUNCTIONS_TOKEN"),
            timeout=self._get_int("FUNCTIONS_TIMEOUT", 30)
        )

    def _load_logging_config(self) -> LoggingConfig:
        """Load logging configuration from environment."""
        log_dir = os.getenv("LOG_DIR")
        return LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_dir=Path(log_dir) if log_dir else None,
            max_file_size=self._get_int("LOG_MAX_FILE_SIZE", 10 * 1024 * 1024),
            backup_count=self._get_int("LOG_BACKUP_COUNT", 5)
        )

    def _load_api_config(self) -> ApiConfig:
        """Load API configuration from environment."""
        return ApiConfig(
            host=os.getenv("API_HOST", "127.0.0.1"),
            port=self._get_int("API_PORT", 8000),
            allowed_origins=self._get_list("API_ALLOWED_ORIGINS", ApiConfig().allowed_origins)
        )

    def _get_int(self, key: str, default: int) -> int:
        """Get integer value from environment."""
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def _get_list(self, key: str, default: List[str]) -> List[str]:
        """Get list value from environment (comma-separated)."""
        value = os.getenv(key)
        if value:
            return [item.strip() for item in value.split(",") if item.strip()]
        return default

    def validate(self) -> Dict[str, List[str]]:
        """Validate all configuration sections."""
        validation_results = {
            "store": self.store.validate(),
            "blob": self.blob.validate(),
            "export": self.export.validate(),
            "auth": self.auth.validate(),
            "logging": self.logging.validate(),
            "api": self.api.validate(),
        }

        # Filter out empty error lists
        return {section: errors for section, errors in validation_results.items() if errors}

    def is_valid(self) -> bool:
        return not self.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Configuration summary without secrets."""
        return {
            "store": {"backend": self.store.backend, "project_id": self.store.project_id},
            "blob": {"backend": self.blob.backend, "bucket": self.blob.bucket},
            "export": {
                "cache_path": str(self.export.cache_path),
                "image_fetch_concurrency": self.export.image_fetch_concurrency,
            },
            "auth": {"backend": self.auth.backend, "functions_base_url": self.auth.functions_base_url},
            "logging": {"level": self.logging.level},
        }


settings = Settings()

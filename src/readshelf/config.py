"""Configuration management for readshelf.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_CATALOG_URL = "https://www.googleapis.com/books/v1/volumes"


@dataclass
class Config:
    """Application configuration."""

    # Storage
    db_path: Path
    session_path: Path

    # Catalog
    catalog_url: str
    catalog_api_key: Optional[str]
    search_limit: int
    http_timeout: int  # seconds

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        home = Path.home() / ".readshelf"
        db_path = Path(
            os.environ.get("READSHELF_DB_PATH", str(home / "books.db"))
        ).expanduser()
        session_path = Path(
            os.environ.get("READSHELF_SESSION_PATH", str(home / "session.json"))
        ).expanduser()

        return cls(
            db_path=db_path,
            session_path=session_path,
            catalog_url=os.environ.get("READSHELF_CATALOG_URL", DEFAULT_CATALOG_URL),
            catalog_api_key=os.environ.get("READSHELF_CATALOG_API_KEY") or None,
            search_limit=int(os.environ.get("READSHELF_SEARCH_LIMIT", "5")),
            http_timeout=int(os.environ.get("READSHELF_HTTP_TIMEOUT", "10")),
            log_level=os.environ.get("READSHELF_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        for path in (self.db_path, self.session_path):
            if str(path) == ":memory:" or path.parent.exists():
                continue
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create directory: {path.parent}")

        if self.search_limit < 1:
            errors.append("READSHELF_SEARCH_LIMIT must be at least 1")
        if self.http_timeout < 1:
            errors.append("READSHELF_HTTP_TIMEOUT must be at least 1")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None

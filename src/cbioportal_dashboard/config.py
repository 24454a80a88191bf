"""Configuration management for cbioportal-dashboard."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "https://www.cbioportal.org/api"


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass
class Config:
    """Application configuration."""

    # REST API settings
    api_base_url: str = DEFAULT_API_URL
    request_timeout: Optional[float] = None  # None disables the httpx timeout

    # Pagination (the upstream API pages with pageSize)
    studies_page_size: int = 10000
    clinical_data_page_size: int = 100000

    # Aggregation settings
    top_protein_changes: int = 10

    # CLI settings
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        load_dotenv()

        return cls(
            api_base_url=os.getenv("CBIOPORTAL_API_URL", DEFAULT_API_URL),
            request_timeout=_optional_float(os.getenv("REQUEST_TIMEOUT")),
            studies_page_size=int(os.getenv("STUDIES_PAGE_SIZE", "10000")),
            clinical_data_page_size=int(os.getenv("CLINICAL_DATA_PAGE_SIZE", "100000")),
            top_protein_changes=int(os.getenv("TOP_PROTEIN_CHANGES", "10")),
            verbose=os.getenv("VERBOSE", "false").lower() == "true",
        )

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.api_base_url.startswith(("http://", "https://")):
            errors.append("CBIOPORTAL_API_URL must be an http(s) URL")
        if self.studies_page_size <= 0:
            errors.append("STUDIES_PAGE_SIZE must be positive")
        if self.clinical_data_page_size <= 0:
            errors.append("CLINICAL_DATA_PAGE_SIZE must be positive")
        if self.top_protein_changes <= 0:
            errors.append("TOP_PROTEIN_CHANGES must be positive")
        if self.request_timeout is not None and self.request_timeout <= 0:
            errors.append("REQUEST_TIMEOUT must be positive when set")

        return errors


@dataclass
class ConfigFile:
    """Configuration file management."""

    config_dir: Path = field(
        default_factory=lambda: Path.home() / ".config" / "cbioportal-dashboard"
    )
    config_file: Path = field(init=False)

    def __post_init__(self) -> None:
        self.config_file = self.config_dir / "config.env"

    def ensure_dir(self) -> None:
        """Ensure config directory exists."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def read(self) -> dict[str, str]:
        """Read the KEY=value pairs currently stored in the config file."""
        existing = {}
        if self.config_file.exists():
            for line in self.config_file.read_text().splitlines():
                if "=" in line and not line.startswith("#"):
                    key, value = line.split("=", 1)
                    existing[key.strip()] = value.strip()
        return existing

    def save_setting(self, key: str, value: str) -> None:
        """Save a single setting, preserving the others."""
        self.ensure_dir()

        existing = self.read()
        existing[key] = value

        with self.config_file.open("w") as f:
            for k, v in existing.items():
                f.write(f"{k}={v}\n")

    def save_api_url(self, url: str) -> None:
        """Save the upstream API URL."""
        self.save_setting("CBIOPORTAL_API_URL", url)

    def load(self) -> None:
        """Load config file into environment."""
        if self.config_file.exists():
            load_dotenv(self.config_file)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        config_file = ConfigFile()
        config_file.load()
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance."""
    global _config
    _config = None

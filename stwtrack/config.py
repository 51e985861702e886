"""
stwtrack Configuration Module.

Centralized configuration management using environment variables.
Supports .env files for local development.

Only the command-line layer reads these settings; the pipeline modules
receive explicit values at construction time.

Usage:
    from stwtrack.config import settings

    print(settings.grib_path)
    print(settings.current_backend)
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
import logging

from dotenv import load_dotenv

# Load .env file if present
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

CURRENT_BACKENDS = ("pygrib", "wgrib2")
MAX_SEARCH_STEPS = 5


def get_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def get_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Current forecast source
    grib_path: str = field(
        default_factory=lambda: os.getenv("STW_GRIB_PATH", "data/grib_currents/current.grb2")
    )
    current_backend: str = field(
        default_factory=lambda: os.getenv("STW_CURRENT_BACKEND", "pygrib").lower()
    )
    wgrib2_path: str = field(default_factory=lambda: os.getenv("WGRIB2", "wgrib2"))
    search_steps: int = field(default_factory=lambda: get_int("STW_SEARCH_STEPS", 2))

    # Output
    out_dir: str = field(default_factory=lambda: os.getenv("STW_OUT_DIR", "data/derived/stw"))
    write_slices: bool = field(default_factory=lambda: get_bool("STW_WRITE_SLICES", False))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.current_backend not in CURRENT_BACKENDS:
            logging.warning(
                f"Unknown current backend '{self.current_backend}', "
                f"expected one of {CURRENT_BACKENDS}, using pygrib"
            )
            self.current_backend = "pygrib"

        # Ring radius in grid steps
        if not 0 <= self.search_steps <= MAX_SEARCH_STEPS:
            logging.warning(
                f"Neighbor search steps {self.search_steps} outside "
                f"range [0, {MAX_SEARCH_STEPS}], using 2"
            )
            self.search_steps = 2

    def configure_logging(self, level: str = None):
        """Configure logging based on settings."""
        name = (level or self.log_level).upper()
        logging.basicConfig(level=getattr(logging, name, logging.INFO), format=self.log_format)


# Singleton instance
settings = Settings()


# Convenience function for testing
def get_settings() -> Settings:
    """Get the settings instance (useful for dependency injection)."""
    return settings

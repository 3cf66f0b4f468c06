"""
Configuration management for pricebadge.

Handles:
- Credits conversion rate
- Global label formatting defaults
- Development / debug logging switches
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Default paths
DEFAULT_DATA_DIR = Path.home() / ".pricebadge"

# 1 USD == 211 credits
DEFAULT_CREDITS_PER_USD = 211.0
DEFAULT_SUFFIX = "/Run"
DEFAULT_SEPARATOR = "/"


@dataclass
class PricingConfig:
    """
    Main pricebadge configuration.

    Stored at ~/.pricebadge/config.json
    """
    credits_per_usd: float = DEFAULT_CREDITS_PER_USD
    default_suffix: str = DEFAULT_SUFFIX
    default_separator: str = DEFAULT_SEPARATOR

    # Log evaluation failures (otherwise silent)
    development: bool = False
    # Trace every settled evaluation
    debug: bool = False

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.json"

    def ensure_data_dir(self) -> None:
        """Create data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        return {
            "credits_per_usd": self.credits_per_usd,
            "default_suffix": self.default_suffix,
            "default_separator": self.default_separator,
            "development": self.development,
            "debug": self.debug,
        }

    def save(self) -> None:
        """Save configuration to disk."""
        self.ensure_data_dir()

        with open(self.config_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.debug(f"Configuration saved to {self.config_path}")

    @classmethod
    def from_dict(cls, data: dict, data_dir: Optional[Path] = None) -> "PricingConfig":
        # Filter to only known fields to handle config evolution
        known_fields = {
            "credits_per_usd", "default_suffix", "default_separator",
            "development", "debug",
        }
        filtered = {k: v for k, v in data.items() if k in known_fields}
        return cls(data_dir=data_dir or DEFAULT_DATA_DIR, **filtered)

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> "PricingConfig":
        """Load configuration from disk."""
        data_dir = data_dir or DEFAULT_DATA_DIR
        config_path = data_dir / "config.json"

        if not config_path.exists():
            return cls(data_dir=data_dir)

        with open(config_path, 'r') as f:
            data = json.load(f)

        return cls.from_dict(data, data_dir=data_dir)

    @classmethod
    def exists(cls, data_dir: Optional[Path] = None) -> bool:
        """Check if configuration exists."""
        data_dir = data_dir or DEFAULT_DATA_DIR
        return (data_dir / "config.json").exists()


# Global config instance
_config: Optional[PricingConfig] = None


def get_config(data_dir: Optional[Path] = None) -> PricingConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = PricingConfig.load(data_dir)
    return _config


def set_config(config: PricingConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None

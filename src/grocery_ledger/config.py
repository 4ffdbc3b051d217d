"""Configuration management for Grocery Ledger."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .dates import DEFAULT_MONTH_NAMES
from .errors import ValidationError


@dataclass
class DataConfig:
    """Data storage configuration."""

    storage_dir: Path
    backend: str = "json"


@dataclass
class IdentityConfig:
    """Which user's collections the ledger operates on."""

    user_id: str = "local"


@dataclass
class DefaultsConfig:
    """Default values for drafted items."""

    unit: str = "pcs"
    quantity: str = "1"


@dataclass
class LocaleConfig:
    """Locale settings for date labels."""

    month_names: list[str] = field(default_factory=lambda: list(DEFAULT_MONTH_NAMES))


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    identity: IdentityConfig
    defaults: DefaultsConfig
    locale: LocaleConfig
    logging: LoggingConfig


class ConfigManager:
    """Manages application configuration from TOML files."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        """Get data configuration."""
        return self._config.data

    @property
    def identity(self) -> IdentityConfig:
        """Get identity configuration."""
        return self._config.identity

    @property
    def defaults(self) -> DefaultsConfig:
        """Get defaults configuration."""
        return self._config.defaults

    @property
    def locale(self) -> LocaleConfig:
        """Get locale configuration."""
        return self._config.locale

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._config.logging

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "grocery-ledger" / "config.toml",
            Path.home() / ".grocery-ledger" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        # Return default location if none found
        return Path.home() / ".config" / "grocery-ledger" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return self._default_config()

        with open(self.config_path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValidationError(f"Invalid config file {self.config_path}: {e}") from e

        month_names = data.get("locale", {}).get("month_names") or list(DEFAULT_MONTH_NAMES)
        if len(month_names) != 12:
            raise ValidationError(
                f"locale.month_names must list 12 names, got {len(month_names)}"
            )

        return Config(
            data=DataConfig(
                storage_dir=Path(
                    data.get("data", {}).get("storage_dir", "~/grocery-ledger/data")
                ).expanduser(),
                backend=data.get("data", {}).get("backend", "json"),
            ),
            identity=IdentityConfig(
                user_id=data.get("identity", {}).get("user_id", "local"),
            ),
            defaults=DefaultsConfig(
                unit=data.get("defaults", {}).get("unit", "pcs"),
                quantity=str(data.get("defaults", {}).get("quantity", "1")),
            ),
            locale=LocaleConfig(month_names=list(month_names)),
            logging=LoggingConfig(
                level=str(data.get("logging", {}).get("level", "WARNING")).upper(),
            ),
        )

    def _default_config(self) -> Config:
        """Return default configuration."""
        return Config(
            data=DataConfig(storage_dir=Path.home() / "grocery-ledger" / "data"),
            identity=IdentityConfig(),
            defaults=DefaultsConfig(),
            locale=LocaleConfig(),
            logging=LoggingConfig(),
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'data.storage_dir'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default

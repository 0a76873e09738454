"""Configuration model and I/O.

Settings are stored in ~/.config/psmodfix/config.toml. A missing file
means defaults; an invalid file is an error the CLI reports.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from psmodfix.core.paths import get_config_path
from psmodfix.models.selection import DEFAULT_FAMILIES, Channel, ModuleFamily

logger = logging.getLogger(__name__)


class FamilyConfig(BaseModel):
    """Configuration entry describing one module family."""

    model_config = ConfigDict(extra="forbid")

    key: Annotated[str, Field(min_length=1)]
    module: Annotated[str, Field(min_length=1)]
    patterns: Annotated[list[str], Field(min_length=1)]
    excludes: list[str] = Field(default_factory=list)
    product: str = ""
    channel: Channel = Channel.STABLE

    def to_family(self) -> ModuleFamily:
        """Convert to the immutable domain model."""
        return ModuleFamily(
            key=self.key,
            module=self.module,
            patterns=tuple(self.patterns),
            excludes=tuple(self.excludes),
            product=self.product,
            channel=self.channel,
        )

    @classmethod
    def from_family(cls, family: ModuleFamily) -> "FamilyConfig":
        """Build a configuration entry from a domain family."""
        return cls(
            key=family.key,
            module=family.module,
            patterns=list(family.patterns),
            excludes=list(family.excludes),
            product=family.product,
            channel=family.channel,
        )


def _default_families() -> list[FamilyConfig]:
    return [FamilyConfig.from_family(f) for f in DEFAULT_FAMILIES]


class Settings(BaseModel):
    """Runtime settings for psmodfix.

    Attributes:
        pwsh: PowerShell executable name or path.
        repository: Repository used for install and version lookups.
        command_timeout_seconds: Timeout for queries and removals.
        install_timeout_seconds: Timeout for a single family install.
        reclaim_delay_seconds: Pause between cleanup passes so file
            handles of removed modules are released.
        extra_module_roots: Additional module roots to sweep.
        require_elevation: Refuse to repair without admin/root rights.
        families: Module families offered in the menus.
    """

    model_config = ConfigDict(extra="forbid")

    pwsh: str = "pwsh"
    repository: str = "PSGallery"
    command_timeout_seconds: Annotated[float, Field(gt=0, le=3600)] = 120.0
    install_timeout_seconds: Annotated[float, Field(gt=0, le=7200)] = 1800.0
    reclaim_delay_seconds: Annotated[float, Field(ge=0, le=60)] = 2.0
    extra_module_roots: list[str] = Field(default_factory=list)
    require_elevation: bool = True
    families: Annotated[list[FamilyConfig], Field(min_length=1)] = Field(
        default_factory=_default_families
    )

    def module_families(self) -> tuple[ModuleFamily, ...]:
        """Configured families as domain models."""
        return tuple(f.to_family() for f in self.families)

    def tracked_modules(self) -> list[str]:
        """Root modules reported by the status check."""
        return [f.module for f in self.families]


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file cannot be parsed."""


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated Settings; defaults if the file doesn't exist.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the file can't be read or doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return Settings()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return Settings.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content in {config_path}: {e}") from e


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings to a TOML file atomically.

    Args:
        settings: Settings to save.
        path: Destination. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = settings.model_dump(mode="json")

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path

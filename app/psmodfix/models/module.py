"""Module models for discovery and status reporting.

This module defines the core data structures for representing
PowerShell modules found by the two discovery mechanisms (the
package manager's registry and the module search path).
"""

from dataclasses import dataclass, field
from enum import Enum

from packaging.version import InvalidVersion, Version


class ModuleSource(Enum):
    """How a module was discovered.

    Attributes:
        GALLERY: Tracked by the package manager's own registry
            (supports uninstall by name and version).
        PATH_ONLY: Present on the module search path but untracked
            by the registry. Only removable by deleting its folder.
    """

    GALLERY = "gallery"
    PATH_ONLY = "path_only"


def parse_version(value: str | None) -> Version | None:
    """Parse a module version string.

    PowerShell versions may carry a prerelease suffix ("2.26.0-preview")
    or a fourth component ("1.0.0.0"); both are accepted by ``Version``.

    Args:
        value: Raw version string as reported by the package manager.

    Returns:
        Parsed Version, or None if the value is empty or unparseable.
    """
    if not value:
        return None
    try:
        return Version(value.strip())
    except InvalidVersion:
        return None


@dataclass(frozen=True, slots=True)
class InstalledModule:
    """Represents a module discovered during a reconciliation pass.

    Both discovery sources are normalized into this single shape and
    tagged with their ``source``.

    Attributes:
        name: Module name (e.g., 'Microsoft.Graph.Authentication')
        version: Installed version
        location: Folder backing this module version on disk
        source: Discovery mechanism that reported the module
    """

    name: str
    version: Version
    location: str
    source: ModuleSource

    def __post_init__(self) -> None:
        """Validate module data after initialization."""
        if not self.name:
            msg = "Module name cannot be empty"
            raise ValueError(msg)

    @property
    def key(self) -> tuple[ModuleSource, str, Version]:
        """Identity used to collapse duplicate discovery results."""
        return (self.source, self.name.lower(), self.version)

    @property
    def is_gallery(self) -> bool:
        """Check if the module is tracked by the package manager registry."""
        return self.source == ModuleSource.GALLERY

    @property
    def is_path_only(self) -> bool:
        """Check if the module was only found on the module search path."""
        return self.source == ModuleSource.PATH_ONLY


@dataclass(frozen=True, slots=True)
class LoadedModuleFile:
    """A module file mapped into another running PowerShell process.

    Attributes:
        pid: Process ID of the PowerShell session.
        process: Process name ('pwsh' or 'powershell').
        path: Full path of the loaded file.
    """

    pid: int
    process: str
    path: str


@dataclass(frozen=True, slots=True)
class PackageStatus:
    """Installed-vs-available status of a tracked module.

    Attributes:
        name: Tracked module name.
        installed_version: Highest installed version, None if not installed.
        available_version: Latest version in the remote repository, None if
            not installed or the remote query failed.
        update_available: True if ``available_version > installed_version``.
        installed: Whether any version is installed.
    """

    name: str
    installed_version: Version | None = field(default=None)
    available_version: Version | None = field(default=None)
    update_available: bool = field(default=False)
    installed: bool = field(default=False)

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            "name": self.name,
            "installed": self.installed,
            "installed_version": str(self.installed_version) if self.installed_version else None,
            "available_version": str(self.available_version) if self.available_version else None,
            "update_available": self.update_available,
        }

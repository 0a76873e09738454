"""Abstract base class for package manager clients.

This module defines the PackageManagerClient interface the repair
workflow drives, and the errors its primitives raise.
"""

from abc import ABC, abstractmethod

from packaging.version import Version

from psmodfix.models.module import InstalledModule, LoadedModuleFile
from psmodfix.models.selection import InstallScope


class PackageManagerError(Exception):
    """Base exception for package manager failures."""


class PackageManagerUnavailableError(PackageManagerError):
    """Raised when the package manager cannot be used at all."""


class RemovalError(PackageManagerError):
    """Raised when a module could not be uninstalled.

    Usually a file lock held by a process that still has the module
    loaded. Callers retry once, then record the module as pending.
    """


class RemoteQueryError(PackageManagerError):
    """Raised when the remote repository could not be queried."""


class InstallError(PackageManagerError):
    """Raised when a module could not be installed."""


class PackageManagerClient(ABC):
    """Abstract base class for package manager clients.

    Every primitive may fail; callers never assume success.

    Example:
        >>> client = PowerShellGetClient()
        >>> if client.is_available():
        ...     for module in client.list_installed("Microsoft.Graph*"):
        ...         print(f"{module.name}: {module.version}")
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the package manager can be used on this system."""

    @abstractmethod
    def list_installed(self, pattern: str) -> list[InstalledModule]:
        """List modules tracked by the package manager registry.

        Args:
            pattern: Name or wildcard pattern.

        Returns:
            GALLERY records, one per installed version.

        Raises:
            PackageManagerError: If the query fails.
        """

    @abstractmethod
    def list_available(self, pattern: str) -> list[InstalledModule]:
        """List modules present on the module search path.

        This is the filesystem view, distinct from the registry view.

        Args:
            pattern: Name or wildcard pattern.

        Returns:
            PATH_ONLY records, one per module folder found.

        Raises:
            PackageManagerError: If the query fails.
        """

    @abstractmethod
    def uninstall(self, name: str, version: Version) -> None:
        """Uninstall one exact version of a module.

        Raises:
            RemovalError: If the module could not be removed.
        """

    @abstractmethod
    def uninstall_all_versions(self, name: str) -> None:
        """Uninstall every installed version of a module.

        Raises:
            RemovalError: If the module could not be removed.
        """

    @abstractmethod
    def install(self, name: str, scope: InstallScope, force: bool = True) -> None:
        """Install a module from the remote repository.

        Args:
            name: Module name.
            scope: Installation scope.
            force: Reinstall and allow overwriting commands of other modules.

        Raises:
            InstallError: If the install failed.
        """

    @abstractmethod
    def find_latest(self, name: str) -> Version | None:
        """Find the latest version available in the remote repository.

        Returns:
            Latest version, or None if the repository has no such module.

        Raises:
            RemoteQueryError: If the repository could not be reached.
        """

    @abstractmethod
    def find_loaded(self, pattern: str) -> list[LoadedModuleFile]:
        """List module files loaded by other running PowerShell sessions.

        psmodfix runs outside PowerShell and cannot unload modules from
        the operator's sessions; it can only find the sessions that hold
        them.

        Args:
            pattern: Module name wildcard matched against file paths.

        Returns:
            Loaded files whose path contains the pattern.

        Raises:
            PackageManagerError: If the process query failed.
        """

    def installed_version(self, name: str) -> Version | None:
        """Highest version of a module found by either discovery source.

        Args:
            name: Exact module name.

        Returns:
            Highest installed version, or None if not installed.

        Raises:
            PackageManagerError: If a discovery query fails.
        """
        versions = [
            module.version
            for module in (*self.list_installed(name), *self.list_available(name))
            if module.name.lower() == name.lower()
        ]
        return max(versions, default=None)

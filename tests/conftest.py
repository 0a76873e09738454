"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import json
from collections.abc import Callable
from fnmatch import fnmatchcase
from pathlib import Path

import pytest
from packaging.version import Version
from psmodfix.client.base import (
    InstallError,
    PackageManagerClient,
    PackageManagerError,
    RemoteQueryError,
    RemovalError,
)
from psmodfix.models.module import InstalledModule, LoadedModuleFile, ModuleSource
from psmodfix.models.selection import InstallScope


_WIN_ROOT = "C:\\Program Files\\PowerShell\\Modules"


class FakeClient(PackageManagerClient):
    """In-memory package manager.

    ``gallery`` is the registry view, ``on_path`` the search-path view.
    Search-path records whose location was deleted from disk disappear,
    like Get-Module -ListAvailable after a folder is removed.
    """

    def __init__(self) -> None:
        self.gallery: list[InstalledModule] = []
        self.on_path: list[InstalledModule] = []
        self.locked: set[str] = set()
        self.exact_version_locked: set[str] = set()
        self.install_failures: set[str] = set()
        self.install_versions: dict[str, str] = {}
        self.latest: dict[str, str] = {}
        self.loaded: list[LoadedModuleFile] = []
        self.loaded_error = False
        self.remote_error = False
        self.discovery_errors = 0
        self.available = True
        self.calls: list[tuple[str, ...]] = []

    def add(self, name: str, version: str, location: str = "") -> None:
        """Register a module in both views."""
        v = Version(version)
        self.gallery.append(InstalledModule(name, v, location, ModuleSource.GALLERY))
        self.on_path.append(InstalledModule(name, v, location, ModuleSource.PATH_ONLY))

    def add_orphan(self, name: str, version: str, location: str = "") -> None:
        """Put a module on the search path only."""
        self.on_path.append(
            InstalledModule(name, Version(version), location, ModuleSource.PATH_ONLY)
        )

    def is_available(self) -> bool:
        return self.available

    def list_installed(self, pattern: str) -> list[InstalledModule]:
        self.calls.append(("list_installed", pattern))
        if self.discovery_errors:
            self.discovery_errors -= 1
            raise PackageManagerError("registry query failed")
        return [m for m in self.gallery if fnmatchcase(m.name.lower(), pattern.lower())]

    def list_available(self, pattern: str) -> list[InstalledModule]:
        self.calls.append(("list_available", pattern))
        self.on_path = [
            m for m in self.on_path if not m.location or Path(m.location).exists()
        ]
        return [m for m in self.on_path if fnmatchcase(m.name.lower(), pattern.lower())]

    def uninstall(self, name: str, version: Version) -> None:
        self.calls.append(("uninstall", name, str(version)))
        if name in self.locked or name in self.exact_version_locked:
            raise RemovalError(f"{name} is in use")
        self._require(lambda m: m.name == name and m.version == version)
        self._forget(lambda m: m.name == name and m.version == version)

    def uninstall_all_versions(self, name: str) -> None:
        self.calls.append(("uninstall_all_versions", name))
        if name in self.locked:
            raise RemovalError(f"{name} is in use")
        self._require(lambda m: m.name == name)
        self._forget(lambda m: m.name == name)

    def install(self, name: str, scope: InstallScope, force: bool = True) -> None:
        self.calls.append(("install", name, scope.value))
        if name in self.install_failures:
            raise InstallError(f"{name}: repository unreachable")
        self.add(name, self.install_versions.get(name, "1.0.0"))

    def find_latest(self, name: str) -> Version | None:
        self.calls.append(("find_latest", name))
        if self.remote_error:
            raise RemoteQueryError("repository unreachable")
        latest = self.latest.get(name)
        return Version(latest) if latest else None

    def find_loaded(self, pattern: str) -> list[LoadedModuleFile]:
        self.calls.append(("find_loaded", pattern))
        if self.loaded_error:
            raise PackageManagerError("process query failed")
        needle = f"*{pattern.lower()}*"
        return [f for f in self.loaded if fnmatchcase(f.path.lower(), needle)]

    def calls_named(self, method: str) -> list[tuple[str, ...]]:
        """Recorded calls of one primitive."""
        return [c for c in self.calls if c[0] == method]

    def _require(self, predicate: Callable[[InstalledModule], bool]) -> None:
        if not any(predicate(m) for m in self.gallery):
            raise RemovalError("No match was found for the specified search criteria")

    def _forget(self, predicate: Callable[[InstalledModule], bool]) -> None:
        self.gallery = [m for m in self.gallery if not predicate(m)]
        self.on_path = [m for m in self.on_path if not predicate(m)]


@pytest.fixture
def fake_client() -> FakeClient:
    """Empty in-memory package manager."""
    return FakeClient()


@pytest.fixture
def module_root(tmp_path: Path) -> Path:
    """Empty PowerShell module root."""
    root = tmp_path / "Modules"
    root.mkdir()
    return root


@pytest.fixture
def mock_installed_json() -> str:
    """Sample Get-InstalledModule output as produced by ConvertTo-Json."""
    return json.dumps(
        [
            {
                "Name": "Microsoft.Graph.Authentication",
                "Version": "2.25.0",
                "Location": _WIN_ROOT + "\\Microsoft.Graph.Authentication\\2.25.0",
            },
            {
                "Name": "Microsoft.Graph.Users",
                "Version": "2.10.0",
                "Location": _WIN_ROOT + "\\Microsoft.Graph.Users\\2.10.0",
            },
            {
                "Name": "Microsoft.Graph.Users",
                "Version": "2.9.0",
                "Location": _WIN_ROOT + "\\Microsoft.Graph.Users\\2.9.0",
            },
        ]
    )


@pytest.fixture
def mock_single_json() -> str:
    """ConvertTo-Json output for a single object (not wrapped in a list)."""
    return json.dumps(
        {
            "Name": "Microsoft.Graph.Beta.Users",
            "Version": "2.26.0-preview",
            "Location": "/usr/local/share/powershell/Modules/Microsoft.Graph.Beta.Users/2.26.0",
        }
    )


@pytest.fixture
def mock_malformed_json() -> str:
    """Records with missing names and unparseable versions."""
    return json.dumps(
        [
            {"Name": "", "Version": "1.0.0", "Location": ""},
            {"Name": "Microsoft.Entra", "Version": "not-a-version", "Location": ""},
            {"Name": "Microsoft.Entra", "Version": "1.0.5", "Location": None},
        ]
    )

"""PowerShellGet client implementation.

Drives PowerShellGet through the ``pwsh`` executable. Every primitive
runs in its own non-interactive session and returns JSON produced by
``ConvertTo-Json``.
"""

import json
import logging
import subprocess
from typing import Any

from packaging.version import Version

from psmodfix.client.base import (
    InstallError,
    PackageManagerClient,
    PackageManagerError,
    PackageManagerUnavailableError,
    RemoteQueryError,
    RemovalError,
)
from psmodfix.models.module import (
    InstalledModule,
    LoadedModuleFile,
    ModuleSource,
    parse_version,
)
from psmodfix.models.selection import InstallScope
from psmodfix.utils.shell import CommandResult, command_exists, run_command

logger = logging.getLogger(__name__)

# Find-Module reports this when the repository has no such module
_NO_MATCH_MARKER = "No match was found"


def quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal.

    Args:
        value: Raw value.

    Returns:
        Literal with embedded single quotes doubled.
    """
    return "'" + value.replace("'", "''") + "'"


class PowerShellGetClient(PackageManagerClient):
    """Client for PowerShellGet running under PowerShell 7.

    Attributes:
        executable: PowerShell executable name or path.
        repository: Repository used for install and find operations.
    """

    def __init__(
        self,
        executable: str = "pwsh",
        repository: str = "PSGallery",
        *,
        timeout: float = 120.0,
        install_timeout: float = 1800.0,
    ) -> None:
        """Initialize the client.

        Args:
            executable: PowerShell executable name or path.
            repository: Repository used for install and find operations.
            timeout: Timeout in seconds for queries and removals.
            install_timeout: Timeout in seconds for a single install.
        """
        self.executable = executable
        self.repository = repository
        self._timeout = timeout
        self._install_timeout = install_timeout

    def is_available(self) -> bool:
        """Check if the PowerShell executable is on PATH."""
        return command_exists(self.executable)

    def list_installed(self, pattern: str) -> list[InstalledModule]:
        """List registry-tracked modules via Get-InstalledModule."""
        script = (
            f"Get-InstalledModule -Name {quote(pattern)} -AllVersions "
            "-ErrorAction SilentlyContinue | "
            "Select-Object Name, @{n='Version';e={$_.Version.ToString()}}, "
            "@{n='Location';e={$_.InstalledLocation}}"
        )
        return self._parse_records(self._query(script), ModuleSource.GALLERY)

    def list_available(self, pattern: str) -> list[InstalledModule]:
        """List modules on the module search path via Get-Module -ListAvailable."""
        script = (
            f"Get-Module -Name {quote(pattern)} -ListAvailable "
            "-ErrorAction SilentlyContinue | "
            "Select-Object Name, @{n='Version';e={$_.Version.ToString()}}, "
            "@{n='Location';e={$_.ModuleBase}}"
        )
        return self._parse_records(self._query(script), ModuleSource.PATH_ONLY)

    def uninstall(self, name: str, version: Version) -> None:
        """Uninstall one exact version with Uninstall-Module."""
        script = (
            f"Uninstall-Module -Name {quote(name)} -RequiredVersion {quote(str(version))} -Force"
        )
        logger.info("Uninstalling %s %s", name, version)
        result = self._run(script, self._timeout)
        if not result.success:
            raise RemovalError(f"{name} {version}: {result.error_text}")

    def uninstall_all_versions(self, name: str) -> None:
        """Uninstall every version with Uninstall-Module -AllVersions."""
        script = f"Uninstall-Module -Name {quote(name)} -AllVersions -Force"
        logger.info("Uninstalling all versions of %s", name)
        result = self._run(script, self._timeout)
        if not result.success:
            raise RemovalError(f"{name}: {result.error_text}")

    def install(self, name: str, scope: InstallScope, force: bool = True) -> None:
        """Install a module with Install-Module."""
        script = (
            f"Install-Module -Name {quote(name)} -Scope {scope.value} "
            f"-Repository {quote(self.repository)}"
        )
        if force:
            script += " -Force -AllowClobber"
        logger.info("Installing %s (%s)", name, scope.value)
        try:
            result = self._run(script, self._install_timeout)
        except PackageManagerUnavailableError:
            raise
        except PackageManagerError as e:
            raise InstallError(f"{name}: {e}") from e
        if not result.success:
            raise InstallError(f"{name}: {result.error_text}")

    def find_latest(self, name: str) -> Version | None:
        """Query the repository for the latest version with Find-Module."""
        script = (
            f"(Find-Module -Name {quote(name)} -Repository {quote(self.repository)} "
            "| Select-Object -First 1).Version.ToString()"
        )
        try:
            result = self._run(script, self._timeout)
        except PackageManagerUnavailableError:
            raise
        except PackageManagerError as e:
            raise RemoteQueryError(str(e)) from e

        if not result.success:
            if _NO_MATCH_MARKER in result.stderr:
                return None
            raise RemoteQueryError(f"{name}: {result.error_text}")

        return parse_version(result.stdout)

    def find_loaded(self, pattern: str) -> list[LoadedModuleFile]:
        """List module files mapped into other pwsh/powershell processes.

        The query session excludes itself through ``$PID``. Processes whose
        module list cannot be read (other users without elevation) are
        skipped.
        """
        script = (
            "Get-Process -Name pwsh, powershell -ErrorAction SilentlyContinue | "
            "Where-Object Id -ne $PID | ForEach-Object { $p = $_; "
            "try { $files = $p.Modules } catch { $files = @() }; "
            f"$files | Where-Object FileName -like {quote(f'*{pattern}*')} | "
            "Select-Object @{n='Id';e={$p.Id}}, @{n='Process';e={$p.ProcessName}}, "
            "@{n='Path';e={$_.FileName}} }"
        )
        loaded: list[LoadedModuleFile] = []
        for item in self._query(script):
            path = str(item.get("Path") or "").strip()
            try:
                pid = int(item.get("Id"))  # type: ignore[arg-type]
            except (TypeError, ValueError):
                pid = 0
            if not path or pid <= 0:
                logger.debug("Skipping unparseable process record: %s", item)
                continue
            loaded.append(
                LoadedModuleFile(pid=pid, process=str(item.get("Process") or ""), path=path)
            )
        return loaded

    def _run(self, script: str, timeout: float) -> CommandResult:
        """Run a script in a fresh non-interactive PowerShell session.

        Args:
            script: PowerShell script text.
            timeout: Timeout in seconds.

        Returns:
            CommandResult of the pwsh process.

        Raises:
            PackageManagerUnavailableError: If pwsh is not installed.
            PackageManagerError: If the process timed out or could not start.
        """
        if not self.is_available():
            msg = f"PowerShell executable '{self.executable}' is not available"
            raise PackageManagerUnavailableError(msg)

        args = [
            self.executable,
            "-NoLogo",
            "-NoProfile",
            "-NonInteractive",
            "-Command",
            f"$ErrorActionPreference = 'Stop'; {script}",
        ]
        logger.debug("pwsh: %s", script)
        try:
            return run_command(args, timeout=timeout)
        except subprocess.TimeoutExpired as e:
            msg = f"PowerShell command timed out after {timeout:.0f}s"
            raise PackageManagerError(msg) from e
        except OSError as e:
            msg = f"Failed to start PowerShell: {e}"
            raise PackageManagerError(msg) from e

    def _query(self, script: str) -> list[dict[str, Any]]:
        """Run a query and decode its JSON output.

        Args:
            script: Pipeline producing objects to serialize.

        Returns:
            List of decoded objects (empty when nothing matched).

        Raises:
            PackageManagerError: If the command fails or emits invalid JSON.
        """
        wrapped = f"ConvertTo-Json -InputObject @({script}) -Compress -Depth 3"
        result = self._run(wrapped, self._timeout)
        if not result.success:
            raise PackageManagerError(result.error_text)

        output = result.stdout.strip()
        if not output:
            return []
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as e:
            msg = f"Unexpected PowerShell output: {e}"
            raise PackageManagerError(msg) from e

        if isinstance(payload, dict):
            return [payload]
        if isinstance(payload, list):
            return [item for item in payload if isinstance(item, dict)]
        return []

    def _parse_records(
        self,
        items: list[dict[str, Any]],
        source: ModuleSource,
    ) -> list[InstalledModule]:
        """Convert decoded objects to InstalledModule records.

        Entries without a name or with an unparseable version are skipped.
        """
        modules: list[InstalledModule] = []
        for item in items:
            name = str(item.get("Name") or "").strip()
            version = parse_version(str(item.get("Version") or ""))
            if not name or version is None:
                logger.debug("Skipping unparseable module record: %s", item)
                continue
            modules.append(
                InstalledModule(
                    name=name,
                    version=version,
                    location=str(item.get("Location") or ""),
                    source=source,
                )
            )
        return modules

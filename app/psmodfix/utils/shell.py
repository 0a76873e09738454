"""Subprocess helpers for driving PowerShell.

Output is always captured and decoded as UTF-8 so module names and error
text survive regardless of the console code page.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass

# Keep child pwsh sessions quiet and offline apart from the gallery calls
QUIET_ENV: dict[str, str] = {
    "POWERSHELL_TELEMETRY_OPTOUT": "1",
    "POWERSHELL_UPDATECHECK": "Off",
}


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured output of a finished process.

    Attributes:
        stdout: Standard output.
        stderr: Standard error.
        returncode: Exit code.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if the process exited with code 0."""
        return self.returncode == 0

    @property
    def error_text(self) -> str:
        """Best available error description for a failed command."""
        return self.stderr.strip() or self.stdout.strip() or f"exit code {self.returncode}"


def run_command(args: list[str], *, timeout: float | None = 60.0) -> CommandResult:
    """Run a command to completion and capture its output.

    The current environment is passed through with :data:`QUIET_ENV` on top.

    Args:
        args: Executable and arguments.
        timeout: Seconds to wait before the process is killed.

    Returns:
        CommandResult with decoded output and the exit code.

    Raises:
        subprocess.TimeoutExpired: If the command exceeds the timeout.
        OSError: If the executable cannot be started.
    """
    completed = subprocess.run(
        args,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
        timeout=timeout,
        env={**os.environ, **QUIET_ENV},
    )
    return CommandResult(
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        returncode=completed.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if an executable name or path resolves on PATH."""
    return shutil.which(name) is not None

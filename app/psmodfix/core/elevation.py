"""Administrative privilege checks and elevated relaunch.

System-wide module roots are only writable with admin (Windows) or root
(POSIX) rights. The repair command checks this up front and relaunches
itself elevated when it can.
"""

from __future__ import annotations

import ctypes
import logging
import os
import shutil
import subprocess
import sys

from psmodfix.core.paths import is_windows

logger = logging.getLogger(__name__)

# ShellExecuteW returns a value greater than 32 on success
_SHELL_EXECUTE_OK = 32

# Hidden global option that keeps the elevated Windows console open
PAUSE_ON_EXIT_FLAG = "--pause-on-exit"


class InsufficientPrivilegeError(Exception):
    """Raised when elevated rights are required but cannot be obtained."""


def is_elevated() -> bool:
    """Return True when the current process has administrator rights."""
    if is_windows():
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def _relaunch_args(argv: list[str], pause: bool = False) -> list[str]:
    """Command line that re-runs the current invocation."""
    if pause and PAUSE_ON_EXIT_FLAG not in argv:
        argv = [PAUSE_ON_EXIT_FLAG, *argv]
    return [sys.executable, "-m", "psmodfix", *argv]


def relaunch_elevated(argv: list[str]) -> bool:
    """Start the current command again with elevated rights.

    On Windows a UAC prompt opens a new elevated console and this
    process can exit. That console waits for Enter before it closes so
    the final report stays readable. On POSIX the command is re-run
    through sudo and this call blocks until it finishes.

    Args:
        argv: Arguments of the current invocation (without the program).

    Returns:
        True if the elevated command was started (Windows) or
        completed successfully (POSIX).
    """
    if is_windows():
        args = _relaunch_args(argv, pause=True)
        params = subprocess.list2cmdline(args[1:])
        try:
            rc = ctypes.windll.shell32.ShellExecuteW(  # type: ignore[attr-defined]
                None, "runas", args[0], params, None, 1
            )
        except (AttributeError, OSError) as e:
            logger.warning("Elevation request failed: %s", e)
            return False
        return int(rc) > _SHELL_EXECUTE_OK

    args = _relaunch_args(argv)
    if shutil.which("sudo") is None:
        logger.warning("sudo is not available; cannot relaunch elevated")
        return False

    logger.info("Relaunching with sudo")
    try:
        completed = subprocess.run(["sudo", *args], check=False)
    except OSError as e:
        logger.warning("Elevation request failed: %s", e)
        return False
    return completed.returncode == 0


def ensure_elevated() -> None:
    """Fail fast when the process lacks elevated rights.

    Raises:
        InsufficientPrivilegeError: If not running elevated.
    """
    if not is_elevated():
        msg = "Administrator rights are required to clean system-wide module folders"
        raise InsufficientPrivilegeError(msg)

"""Installed-vs-available status of tracked modules.

Used on shell startup, so it must work offline: remote failures degrade
to an unknown available version instead of raising.
"""

import logging

from packaging.version import Version

from psmodfix.client.base import (
    PackageManagerClient,
    PackageManagerError,
    PackageManagerUnavailableError,
)
from psmodfix.models.module import PackageStatus

logger = logging.getLogger(__name__)


class StatusReporter:
    """Compares installed and latest available versions.

    Args:
        client: Package manager used for local and remote lookups.
    """

    def __init__(self, client: PackageManagerClient) -> None:
        self._client = client

    def get_status(self, tracked_names: list[str]) -> list[PackageStatus]:
        """Compute the status of each tracked module.

        Args:
            tracked_names: Module names, in display order.

        Returns:
            One PackageStatus per name, in input order.

        Raises:
            PackageManagerUnavailableError: If the package manager cannot be used.
        """
        return [self._status_of(name) for name in tracked_names]

    def _status_of(self, name: str) -> PackageStatus:
        try:
            installed = self._client.installed_version(name)
        except PackageManagerUnavailableError:
            raise
        except PackageManagerError as e:
            logger.warning("Could not read installed version of %s: %s", name, e)
            installed = None

        if installed is None:
            return PackageStatus(name=name)

        available = self._latest(name)
        return PackageStatus(
            name=name,
            installed_version=installed,
            available_version=available,
            update_available=available is not None and available > installed,
            installed=True,
        )

    def _latest(self, name: str) -> Version | None:
        try:
            return self._client.find_latest(name)
        except PackageManagerUnavailableError:
            raise
        except PackageManagerError as e:
            logger.info("Remote lookup for %s failed: %s", name, e)
            return None


def updates_available(statuses: list[PackageStatus]) -> list[PackageStatus]:
    """Filter statuses with an update available."""
    return [s for s in statuses if s.update_available]

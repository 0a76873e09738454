"""Reinstall step of the repair workflow."""

import logging

from psmodfix.client.base import (
    PackageManagerClient,
    PackageManagerError,
    PackageManagerUnavailableError,
)
from psmodfix.core.progress import StatusChannel
from psmodfix.models.report import InstallOutcome, InstallReport
from psmodfix.models.selection import InstallScope, PackageSelection

logger = logging.getLogger(__name__)


class Installer:
    """Installs the root module of every selected family.

    One family's failure never stops the others.

    Args:
        client: Package manager used for installation.
        channel: Channel receiving progress messages.
    """

    def __init__(
        self,
        client: PackageManagerClient,
        *,
        channel: StatusChannel | None = None,
    ) -> None:
        self._client = client
        self._channel = channel or StatusChannel()

    def install(self, selection: PackageSelection, scope: InstallScope) -> InstallReport:
        """Install every family of the selection with force and overwrite.

        Args:
            selection: Families to install.
            scope: Installation scope.

        Returns:
            InstallReport with one outcome per family.

        Raises:
            PackageManagerUnavailableError: If the package manager cannot be used.
        """
        outcomes: dict[str, InstallOutcome] = {}

        for family in selection.families:
            self._channel.publish(f"Installing {family.module} ({scope.value})")
            try:
                self._client.install(family.module, scope, force=True)
            except PackageManagerUnavailableError:
                raise
            except PackageManagerError as e:
                logger.warning("Install of %s failed: %s", family.module, e)
                outcomes[family.module] = InstallOutcome(
                    module=family.module,
                    success=False,
                    error=str(e),
                )
                continue

            logger.info("Installed %s", family.module)
            outcomes[family.module] = InstallOutcome(module=family.module, success=True)

        return InstallReport(per_family=outcomes)

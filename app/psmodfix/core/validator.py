"""Post-install validation.

Checks that every family targeted for install now resolves to an
installed version, and that stable and preview siblings of the same
product ended up on the same version.
"""

import logging

from packaging.version import Version

from psmodfix.client.base import (
    PackageManagerClient,
    PackageManagerError,
    PackageManagerUnavailableError,
)
from psmodfix.models.report import InstallReport, ValidationReport, ValidationVerdict
from psmodfix.models.selection import PackageSelection, find_sibling_pairs

logger = logging.getLogger(__name__)


class Validator:
    """Validates the end state of a reinstall.

    Args:
        client: Package manager used to resolve installed versions.
    """

    def __init__(self, client: PackageManagerClient) -> None:
        self._client = client

    def validate(
        self,
        selection: PackageSelection,
        install_report: InstallReport,
    ) -> ValidationReport:
        """Resolve installed versions of targeted families.

        A family counts as targeted when it appears in the install report,
        whether or not its install succeeded.

        Args:
            selection: Families selected for install.
            install_report: Report returned by the Installer.

        Returns:
            ValidationReport with verdict, resolved versions and mismatches.
        """
        targeted = tuple(f for f in selection.families if f.module in install_report.per_family)
        resolved: dict[str, Version | None] = {
            family.module: self._resolve(family.module) for family in targeted
        }

        if any(version is None for version in resolved.values()):
            return ValidationReport(verdict=ValidationVerdict.FAILED, resolved=resolved)

        mismatches: list[tuple[str, str]] = []
        for stable, preview in find_sibling_pairs(targeted):
            stable_version = resolved[stable.module]
            preview_version = resolved[preview.module]
            if stable_version != preview_version:
                logger.warning(
                    "%s %s and %s %s are not aligned",
                    stable.module,
                    stable_version,
                    preview.module,
                    preview_version,
                )
                mismatches.append((stable.module, preview.module))

        verdict = ValidationVerdict.VERSION_MISMATCH if mismatches else ValidationVerdict.SUCCESS
        return ValidationReport(verdict=verdict, resolved=resolved, mismatches=tuple(mismatches))

    def _resolve(self, module: str) -> Version | None:
        try:
            return self._client.installed_version(module)
        except PackageManagerUnavailableError:
            raise
        except PackageManagerError as e:
            logger.warning("Could not resolve installed version of %s: %s", module, e)
            return None

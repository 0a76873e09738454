"""Package manager clients for psmodfix."""

from psmodfix.client.base import (
    InstallError,
    PackageManagerClient,
    PackageManagerError,
    PackageManagerUnavailableError,
    RemoteQueryError,
    RemovalError,
)
from psmodfix.client.powershell import PowerShellGetClient

__all__ = [
    "InstallError",
    "PackageManagerClient",
    "PackageManagerError",
    "PackageManagerUnavailableError",
    "PowerShellGetClient",
    "RemoteQueryError",
    "RemovalError",
]

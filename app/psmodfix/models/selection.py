"""Module family and selection models.

A selection is the operator's choice of module families for one run,
made from a fixed numbered menu and never changed afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatchcase


class InstallScope(str, Enum):
    """Installation scope passed to the package manager.

    Values match PowerShellGet's ``-Scope`` argument.
    """

    ALL_USERS = "AllUsers"
    CURRENT_USER = "CurrentUser"


class Channel(str, Enum):
    """Release channel of a module family."""

    STABLE = "stable"
    PREVIEW = "preview"


@dataclass(frozen=True, slots=True)
class ModuleFamily:
    """A group of related modules installed through one root module.

    Attributes:
        key: Short identifier used in configuration (e.g., 'graph-beta').
        module: Root module name passed to the installer.
        patterns: Case-insensitive wildcard patterns selecting member modules.
        excludes: Patterns removed from the match (sibling families).
        product: Product line shared by stable and preview siblings.
        channel: Release channel of this family.
    """

    key: str
    module: str
    patterns: tuple[str, ...]
    excludes: tuple[str, ...] = field(default=())
    product: str = field(default="")
    channel: Channel = field(default=Channel.STABLE)

    def __post_init__(self) -> None:
        """Validate family data after initialization."""
        if not self.key:
            msg = "Family key cannot be empty"
            raise ValueError(msg)
        if not self.module:
            msg = f"Family '{self.key}' has no root module"
            raise ValueError(msg)
        if not self.patterns:
            msg = f"Family '{self.key}' has no name patterns"
            raise ValueError(msg)

    def matches(self, name: str) -> bool:
        """Check if a module name belongs to this family.

        Args:
            name: Module name as reported by the package manager.

        Returns:
            True if the name matches a pattern and no exclude.
        """
        lowered = name.lower()
        if not any(fnmatchcase(lowered, p.lower()) for p in self.patterns):
            return False
        return not any(fnmatchcase(lowered, p.lower()) for p in self.excludes)


GRAPH = ModuleFamily(
    key="graph",
    module="Microsoft.Graph",
    patterns=("Microsoft.Graph", "Microsoft.Graph.*"),
    excludes=("Microsoft.Graph.Beta", "Microsoft.Graph.Beta.*"),
    product="Microsoft.Graph",
    channel=Channel.STABLE,
)
GRAPH_BETA = ModuleFamily(
    key="graph-beta",
    module="Microsoft.Graph.Beta",
    patterns=("Microsoft.Graph.Beta", "Microsoft.Graph.Beta.*"),
    product="Microsoft.Graph",
    channel=Channel.PREVIEW,
)
ENTRA = ModuleFamily(
    key="entra",
    module="Microsoft.Entra",
    patterns=("Microsoft.Entra", "Microsoft.Entra.*"),
    excludes=("Microsoft.Entra.Beta", "Microsoft.Entra.Beta.*"),
    product="Microsoft.Entra",
    channel=Channel.STABLE,
)
ENTRA_BETA = ModuleFamily(
    key="entra-beta",
    module="Microsoft.Entra.Beta",
    patterns=("Microsoft.Entra.Beta", "Microsoft.Entra.Beta.*"),
    product="Microsoft.Entra",
    channel=Channel.PREVIEW,
)

DEFAULT_FAMILIES: tuple[ModuleFamily, ...] = (GRAPH, GRAPH_BETA, ENTRA, ENTRA_BETA)


@dataclass(frozen=True, slots=True)
class PackageSelection:
    """Immutable set of families chosen for one run.

    Attributes:
        families: Selected families in menu order.
        scope: Installation scope for the reinstall step.
    """

    families: tuple[ModuleFamily, ...]
    scope: InstallScope = InstallScope.ALL_USERS

    @property
    def is_empty(self) -> bool:
        """Check if no family is selected."""
        return not self.families

    @property
    def patterns(self) -> tuple[str, ...]:
        """Ordered, de-duplicated name patterns of all selected families."""
        seen: set[str] = set()
        ordered: list[str] = []
        for family in self.families:
            for pattern in family.patterns:
                if pattern.lower() not in seen:
                    seen.add(pattern.lower())
                    ordered.append(pattern)
        return tuple(ordered)

    @property
    def module_names(self) -> tuple[str, ...]:
        """Root module names of the selected families."""
        return tuple(f.module for f in self.families)

    def matches(self, name: str) -> bool:
        """Check if a module name belongs to any selected family."""
        return any(f.matches(name) for f in self.families)


@dataclass(frozen=True, slots=True)
class MenuOption:
    """One numbered entry of an interactive family menu.

    Attributes:
        number: Number the operator types to pick this entry.
        label: Human-readable description.
        families: Families selected by this entry (empty means skip).
    """

    number: int
    label: str
    families: tuple[ModuleFamily, ...]


def _label(families: tuple[ModuleFamily, ...]) -> str:
    return " + ".join(f.module for f in families)


def build_family_menu(
    families: tuple[ModuleFamily, ...],
    *,
    include_skip: bool = False,
) -> list[MenuOption]:
    """Build the numbered family menu.

    Sibling pairs (same product) come first, in family order, so the first
    entry is the default combination. Single families follow, then an
    entry covering everything when more than one product is configured.

    Args:
        families: Configured families.
        include_skip: If True, add entry 0 selecting nothing.

    Returns:
        Menu options in display order.
    """
    groups: dict[str, list[ModuleFamily]] = {}
    for family in families:
        groups.setdefault(family.product or family.key, []).append(family)

    combos: list[tuple[ModuleFamily, ...]] = []
    for members in groups.values():
        if len(members) > 1:
            combos.append(tuple(members))
    combos.extend((family,) for family in families)
    if len(groups) > 1 and len(families) > 1:
        combos.append(tuple(families))

    options: list[MenuOption] = []
    if include_skip:
        options.append(MenuOption(number=0, label="Skip installation", families=()))
    for number, combo in enumerate(combos, start=1):
        options.append(MenuOption(number=number, label=_label(combo), families=combo))
    return options


def find_sibling_pairs(
    families: tuple[ModuleFamily, ...],
) -> list[tuple[ModuleFamily, ModuleFamily]]:
    """Find stable/preview sibling pairs among the given families.

    Args:
        families: Families to inspect.

    Returns:
        List of (stable, preview) pairs sharing a product line.
    """
    pairs: list[tuple[ModuleFamily, ModuleFamily]] = []
    for stable in families:
        if stable.channel != Channel.STABLE or not stable.product:
            continue
        for preview in families:
            if preview.channel == Channel.PREVIEW and preview.product == stable.product:
                pairs.append((stable, preview))
    return pairs

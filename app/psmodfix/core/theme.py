"""Color theme for psmodfix console output.

The bundled ``data/theme.toml`` provides every color; a ``theme.toml`` in
the config directory may override any subset of them.
"""

import logging
import tomllib
from importlib import resources
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from rich.theme import Theme

from psmodfix.core.paths import get_config_dir

logger = logging.getLogger(__name__)

HexColor = Annotated[str, Field(pattern=r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")]


class ThemeColors(BaseModel):
    """Named colors (#RGB or #RRGGBB) used by the console styles."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    text: HexColor = "#ffffff"
    muted: HexColor = "#b2bec3"
    header: HexColor = "#69B9A1"
    border: HexColor = "#29526d"

    success: HexColor = "#03b971"
    warning: HexColor = "#f5b332"
    error: HexColor = "#f53263"
    info: HexColor = "#0ec1c8"

    # Status table
    current: HexColor = "#03b971"
    outdated: HexColor = "#faf870"
    missing: HexColor = "#d44ebc"


def get_user_theme_path() -> Path:
    """Path of the optional user override file."""
    return get_config_dir() / "theme.toml"


def get_bundled_theme_path() -> Path:
    """Path of the theme shipped with the package."""
    return resources.files("psmodfix.data").joinpath("theme.toml")  # type: ignore[return-value]


def _read_colors(path: Path) -> dict[str, str]:
    """Read the ``[colors]`` table of a theme file.

    A missing or unreadable file yields no colors; non-string values are
    ignored.
    """
    try:
        with open(path, "rb") as f:
            table = tomllib.load(f).get("colors", {})
    except FileNotFoundError:
        return {}
    except (tomllib.TOMLDecodeError, OSError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return {}

    if not isinstance(table, dict):
        logger.warning("Ignoring theme file %s: 'colors' is not a table", path)
        return {}
    return {key: value for key, value in table.items() if isinstance(value, str)}


def load_theme() -> ThemeColors:
    """Load bundled colors merged with the user's overrides.

    An invalid override falls back to the defaults instead of failing.
    """
    colors = _read_colors(Path(get_bundled_theme_path()))
    colors.update(_read_colors(get_user_theme_path()))
    try:
        return ThemeColors(**colors)
    except ValidationError as e:
        logger.warning("Invalid theme colors, using defaults: %s", e)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Build the Rich theme referenced by console markup.

    Args:
        colors: Colors to use. If None, loads them from the theme files.

    Returns:
        Rich Theme with base, semantic and status styles.
    """
    c = colors or load_theme()
    return Theme(
        {
            "text": c.text,
            "muted": c.muted,
            "dim": c.muted,
            "header": c.header,
            "bold_header": f"bold {c.header}",
            "border": c.border,
            "success": c.success,
            "warning": c.warning,
            "error": f"bold {c.error}",
            "info": c.info,
            "current": c.current,
            "outdated": f"bold {c.outdated}",
            "missing": c.missing,
            "module.name": f"bold {c.text}",
            "module.version": c.muted,
        }
    )


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Get the Rich theme, loading it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme

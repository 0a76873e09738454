"""Allow running psmodfix with ``python -m psmodfix``."""

from psmodfix.cli.main import app

app()

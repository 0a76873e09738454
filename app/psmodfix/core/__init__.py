"""Core repair workflow for psmodfix."""

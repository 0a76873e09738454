"""Bundled data files for psmodfix."""

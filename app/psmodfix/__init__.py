"""psmodfix - clean reinstall and version status for PowerShell SDK module families."""

__version__ = "0.3.0"

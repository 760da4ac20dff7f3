"""Incremental mirroring of versioned documentation trees from GitHub."""

__version__ = "0.1.0"

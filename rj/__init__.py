"""Report janitor: retention, dedup and merge job for a shared report store."""

__version__ = "1.0.0"

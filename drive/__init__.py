"""Mini drive: per-user file catalog backed by a blob store."""

__version__ = "0.1.0"

"""SuperToken price cache service."""

__version__ = "1.0.0"

"""articrawl — article crawler service (fetch, extract, serve)."""

__version__ = "0.1.0"

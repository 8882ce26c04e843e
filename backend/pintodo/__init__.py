"""Self-hosted multi-list todo server with optional PIN gate."""

__version__ = "0.1.0"

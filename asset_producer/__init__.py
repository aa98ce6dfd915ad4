"""Nexpose scanned-asset producer."""

__version__: str = "1.0.0"

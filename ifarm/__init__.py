"""iFarm access control service."""

__version__ = "1.0.0"

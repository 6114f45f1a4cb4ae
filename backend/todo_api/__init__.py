"""Multi-user to-do list API."""

__version__ = "0.1.0"

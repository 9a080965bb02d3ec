"""Bulk ANPR alive-status checker."""

__version__ = "0.1.0"

"""Attendance CSV -> PostgreSQL batch importer."""

__version__ = "0.1.0"

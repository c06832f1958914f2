"""Database infrastructure for the moderation service."""

from .connection import DatabaseManager

__all__ = ["DatabaseManager"]

"""Database models for Pingboard."""

from pingboard.models.check_history import CheckHistory

__all__ = ["CheckHistory"]

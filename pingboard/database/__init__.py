"""Database module for Pingboard."""

from pingboard.database.base import Base
from pingboard.database.session import create_engine, create_session_factory

__all__ = ["Base", "create_engine", "create_session_factory"]

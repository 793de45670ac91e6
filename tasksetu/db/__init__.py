"""Database package"""

from tasksetu.db.session import build_engine, build_session_factory, get_db
from tasksetu.models.base import Base

__all__ = ["Base", "build_engine", "build_session_factory", "get_db"]

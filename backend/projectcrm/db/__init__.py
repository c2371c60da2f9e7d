"""Database package."""

from projectcrm.db.base import Base, BaseModel
from projectcrm.db.session import get_db_session

__all__ = ["Base", "BaseModel", "get_db_session"]

"""SQLAlchemy ORM models."""

from techfeed.models.base import Base
from techfeed.models.session import UserSession
from techfeed.models.user import User

__all__ = ["Base", "User", "UserSession"]

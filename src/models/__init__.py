"""SQLAlchemy ORM models."""

from src.models.base import Base
from src.models.favorite import Favorite
from src.models.listing import Listing
from src.models.user import User

__all__ = ["Base", "Favorite", "Listing", "User"]

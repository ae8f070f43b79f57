"""Declarative base and identifier helpers shared by ORM models."""

import secrets

from sqlalchemy.orm import DeclarativeBase


def new_object_id() -> str:
    """Return a new 24-character hex identifier."""

    return secrets.token_hex(12)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

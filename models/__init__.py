"""
SQLAlchemy ORM models for database tables.

This package defines the database schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class and the JSON column type
    card: Cards mirrored from the remote card database
    dataset_version: Last downloaded remote database version (sync gate)
    seeds: Static seed tables (binder images, avatars, tags)

Database Schema:
    All models inherit from the Base declarative class. Nested card data
    uses JSONB on PostgreSQL and falls back to JSON on other backends.

Usage:
    from models import Card, DatasetVersion, BinderImage, Avatar, Tag
    from models.base import Base

Example:
    # Record the first downloaded version
    version = DatasetVersion(downloaded_version="132.93")
    session.add(version)
    await session.commit()
"""

from models.base import Base
from models.card import Card
from models.dataset_version import DatasetVersion
from models.seeds import BinderImage, Avatar, Tag

__all__ = [
    "Base",
    "Card",
    "DatasetVersion",
    "BinderImage",
    "Avatar",
    "Tag",
]

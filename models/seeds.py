from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from models.base import Base


class BinderImage(Base):
    """Binder cover artwork available to users, keyed by its object key"""
    __tablename__ = "binder_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    s3_key = Column(String(255), nullable=False, unique=True)
    artist = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Avatar(Base):
    """User avatar artwork, keyed by its object key"""
    __tablename__ = "avatars"

    id = Column(Integer, primary_key=True, autoincrement=True)
    s3_key = Column(String(255), nullable=False, unique=True)
    artist = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Tag(Base):
    """Deck tag: a fixed card-type tag or an archetype name"""
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime
from datetime import datetime
from models.base import Base, JSONType


class Card(Base):
    """
    One card from the remote card database, keyed by its external id.

    Field Mapping (remote -> column):
    - id -> id
    - desc -> description
    - frameType -> frame_type
    - atk / def -> attack / defense
    - misc_info[0].formats -> formats
    - misc_info[0].konami_id -> konami_id
    - card_images[].id -> card_images (list of image ids)

    Nested structures (sets, prices, ban list) are stored verbatim as JSON.
    Re-ingesting the same id overwrites every mutable column in place.
    """
    __tablename__ = "cards"

    id = Column(BigInteger, primary_key=True, autoincrement=False)

    # Core fields
    name = Column(String(255), nullable=False, index=True)
    type = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)
    frame_type = Column(String(50), nullable=True)
    typeline = Column(JSONType, nullable=True)

    # Monster attributes
    attack = Column(Integer, nullable=True)
    defense = Column(Integer, nullable=True)
    level = Column(Integer, nullable=True)
    attribute = Column(String(50), nullable=True)
    race = Column(String(100), nullable=True)
    archetype = Column(String(200), nullable=True, index=True)

    # Nested data passed through verbatim
    card_sets = Column(JSONType, nullable=True)
    card_prices = Column(JSONType, nullable=True)
    card_images = Column(JSONType, nullable=True)
    banlist_info = Column(JSONType, nullable=True)
    formats = Column(JSONType, nullable=True)
    konami_id = Column(BigInteger, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from models.base import Base


class DatasetVersion(Base):
    """
    Last downloaded version of the remote card database.

    Purpose:
    - Gate sync runs: nothing is fetched while the remote version is unchanged
    - Audit when the local copy was last refreshed

    Design:
    - One logical "current" row; the latest by downloaded_version wins
    - Updated in place on every version change, never deleted
    """
    __tablename__ = "db_info"

    id = Column(Integer, primary_key=True, autoincrement=True)
    downloaded_version = Column(String(64), nullable=False, index=True)
    last_updated = Column(DateTime, nullable=False, default=datetime.utcnow)

"""
Pydantic schema for the remote database version descriptor
"""

from pydantic import BaseModel, field_validator
from typing import Optional


class DatabaseVersionInfo(BaseModel):
    """
    Response item of checkDBVer.php.

    Example:
        {"database_version": "132.93", "last_update": "2024-05-02 17:32:41"}
    """

    database_version: str
    last_update: Optional[str] = None

    @field_validator("database_version", mode="before")
    @classmethod
    def coerce_version(cls, v):
        """Versions are compared as strings; numbers are accepted and stringified"""
        if isinstance(v, (int, float)):
            return str(v)
        return v

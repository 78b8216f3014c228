"""
Pydantic schemas for remote payload validation.

This package defines Pydantic models that validate data coming from the
remote card database before it reaches the relational store:

Schemas:
    card: Card and card image payloads, mapped to the cards table
    version: Remote database version descriptor

Usage:
    from schemas import CardCreate, DatabaseVersionInfo

Example:
    card = CardCreate.from_api(payload)
    await store.upsert(Card, "id", card.to_row())
"""

from schemas.card import CardCreate, CardImage
from schemas.version import DatabaseVersionInfo

__all__ = [
    "CardCreate",
    "CardImage",
    "DatabaseVersionInfo",
]

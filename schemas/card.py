"""
Pydantic schemas for card payloads from the remote card database
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any


class CardImage(BaseModel):
    """One artwork of a card; each URL is one image variant"""

    id: int
    image_url: Optional[str] = None
    image_url_small: Optional[str] = None
    image_url_cropped: Optional[str] = None


class CardCreate(BaseModel):
    """
    Schema for upserting a card row.

    Ensures:
    - The external id and name are present
    - Numeric attributes are integers
    - Nested structures are passed through untouched
    """

    id: int
    name: str = Field(..., min_length=1, max_length=255)
    type: Optional[str] = None
    description: Optional[str] = None
    frame_type: Optional[str] = None
    typeline: Optional[List[str]] = None

    attack: Optional[int] = None
    defense: Optional[int] = None
    level: Optional[int] = None
    attribute: Optional[str] = None
    race: Optional[str] = None
    archetype: Optional[str] = None

    card_sets: Optional[List[Dict[str, Any]]] = None
    card_prices: Optional[List[Dict[str, Any]]] = None
    card_images: List[int] = Field(default_factory=list)
    banlist_info: Optional[Dict[str, Any]] = None
    formats: Optional[List[str]] = None
    konami_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def clean_name(cls, v):
        """Clean and normalize name"""
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty after stripping")
        return v

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "CardCreate":
        """
        Map a card from cardinfo.php to the cards table schema.

        Args:
            payload: One element of the "data" array

        Returns:
            Validated CardCreate

        Raises:
            pydantic.ValidationError: If required fields are missing or mistyped
        """
        misc_info = payload.get("misc_info") or [{}]
        misc = misc_info[0] if isinstance(misc_info[0], dict) else {}

        return cls(
            id=payload.get("id"),
            name=payload.get("name"),
            type=payload.get("type"),
            description=payload.get("desc"),
            frame_type=payload.get("frameType"),
            typeline=payload.get("typeline"),
            attack=payload.get("atk"),
            defense=payload.get("def"),
            level=payload.get("level"),
            attribute=payload.get("attribute"),
            race=payload.get("race"),
            archetype=payload.get("archetype"),
            card_sets=payload.get("card_sets"),
            card_prices=payload.get("card_prices"),
            card_images=[image["id"] for image in payload.get("card_images") or []],
            banlist_info=payload.get("banlist_info"),
            formats=misc.get("formats"),
            konami_id=misc.get("konami_id"),
        )

    def to_row(self) -> Dict[str, Any]:
        """Column values for the cards table, nulls included so updates clear stale fields"""
        return self.model_dump()

"""
Derive the distinct card images to rehost from a catalog.
"""

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Sequence, Tuple
from urllib.parse import urlsplit
import enum
import logging

from pydantic import ValidationError

from schemas.card import CardImage

logger = logging.getLogger(__name__)


class ImageVariant(str, enum.Enum):
    """Image sizes published per card artwork"""
    NORMAL = "normal"
    SMALL = "small"
    CROPPED = "cropped"


# CardImage attribute holding the URL of each variant
VARIANT_URL_FIELDS = {
    ImageVariant.NORMAL: "image_url",
    ImageVariant.SMALL: "image_url_small",
    ImageVariant.CROPPED: "image_url_cropped",
}


@dataclass(frozen=True)
class AssetReference:
    """One image variant of one card artwork"""

    owner_item_id: int
    variant: ImageVariant
    source_url: str

    @property
    def basename(self) -> str:
        return PurePosixPath(urlsplit(self.source_url).path).name

    def destination_key(self, category: str = "cards") -> str:
        """Object key as <category>/<variant>/<basename>; depends only on variant and URL"""
        return f"{category}/{self.variant.value}/{self.basename}"

    def staging_path(self, staging_dir: Path) -> Path:
        return Path(staging_dir) / self.variant.value / self.basename


class AssetResolver:
    """
    Collect image references from card payloads.

    Handles:
    - One entry per (artwork id, variant); a later definition wins
    - Dropping variants without a URL
    - Restricting to the configured variants
    """

    def __init__(self, variants: Sequence[ImageVariant] = (ImageVariant.NORMAL, ImageVariant.SMALL)):
        self.variants = [ImageVariant(v) for v in variants]

    def resolve(self, cards: Iterable[Dict[str, Any]]) -> Dict[Tuple[int, ImageVariant], str]:
        """
        Map (artwork id, variant) to source URL.

        Args:
            cards: Raw card payloads from the catalog

        Returns:
            Deduplicated mapping; entries with empty URLs are dropped
        """
        resolved: Dict[Tuple[int, ImageVariant], str] = {}

        for card in cards:
            if not isinstance(card, dict):
                logger.warning(f"Skipping malformed card entry: {card!r}")
                continue
            for raw_image in card.get("card_images") or []:
                try:
                    image = CardImage.model_validate(raw_image)
                except ValidationError as e:
                    logger.warning(f"Skipping malformed image of card {card.get('id')}: {e}")
                    continue
                for variant in self.variants:
                    url = getattr(image, VARIANT_URL_FIELDS[variant])
                    if url:
                        resolved[(image.id, variant)] = url
                    else:
                        resolved.pop((image.id, variant), None)

        return resolved

    def references(self, cards: Iterable[Dict[str, Any]]) -> List[AssetReference]:
        """Flat list of references, one per resolved (artwork id, variant)"""
        references = [
            AssetReference(owner_item_id=image_id, variant=variant, source_url=url)
            for (image_id, variant), url in self.resolve(cards).items()
        ]
        logger.info(f"Resolved {len(references)} images across variants {[v.value for v in self.variants]}")
        return references

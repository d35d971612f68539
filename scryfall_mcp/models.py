"""
Data records returned by the tools and stored in the cache.

All records serialize with `to_json_dict()`, which drops unset (None)
fields so cached files and tool payloads only carry what upstream gave us.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """Base for every record: aliases on input and output, None dropped."""
    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# CARDS
# =============================================================================

class ImageUris(Record):
    small: Optional[str] = None
    normal: Optional[str] = None


class Legalities(Record):
    """The formats we report legality for."""
    standard: Optional[str] = None
    modern: Optional[str] = None
    commander: Optional[str] = None


class Ruling(Record):
    oracle_id: Optional[str] = None
    source: Optional[str] = None
    comment: Optional[str] = None


class SimilarCardRecord(Record):
    """A commander EDHREC considers similar to the one looked up."""
    name: str
    color_identity: Optional[List[str]] = None
    cmc: Optional[float] = None
    type: Optional[str] = None
    image_uris: Optional[ImageUris] = None


class CardRecord(Record):
    """
    The subset of a Scryfall card object we hand back to Claude.

    `rulings` and `similar_cards` are never cached; they're attached per
    request when the caller asks for them.
    """
    name: str
    mana_cost: Optional[str] = None
    type_line: Optional[str] = None
    oracle_text: Optional[str] = None
    power: Optional[str] = None
    toughness: Optional[str] = None
    colors: Optional[List[str]] = None
    legalities: Legalities = Field(default_factory=Legalities)
    set_name: Optional[str] = None
    rarity: Optional[str] = None
    rulings_uri: Optional[str] = None
    image_uris: ImageUris = Field(default_factory=ImageUris)
    cmc: Optional[float] = None
    keywords: Optional[List[str]] = None
    rulings: Optional[List[Ruling]] = None
    similar_cards: Optional[List[SimilarCardRecord]] = None

    @classmethod
    def from_scryfall(cls, data: dict) -> "CardRecord":
        """Maps a raw Scryfall card object onto our record."""
        legalities = data.get("legalities") or {}
        image_uris = data.get("image_uris") or {}
        return cls(
            name=data["name"],
            mana_cost=data.get("mana_cost"),
            type_line=data.get("type_line"),
            oracle_text=data.get("oracle_text"),
            power=data.get("power"),
            toughness=data.get("toughness"),
            colors=data.get("colors"),
            legalities=Legalities(
                standard=legalities.get("standard"),
                modern=legalities.get("modern"),
                commander=legalities.get("commander"),
            ),
            set_name=data.get("set_name"),
            rarity=data.get("rarity"),
            rulings_uri=data.get("rulings_uri"),
            image_uris=ImageUris(
                small=image_uris.get("small"),
                normal=image_uris.get("normal"),
            ),
            cmc=data.get("cmc"),
            keywords=data.get("keywords"),
        )


class SearchResultEnvelope(Record):
    object: str = "list"
    total_cards: int = 0
    has_more: bool = False
    next_page: Optional[str] = None
    data: List[CardRecord] = Field(default_factory=list)


# =============================================================================
# DECKS
# =============================================================================

class CategoryMembership(Record):
    category_name: str = Field(alias="categoryName")
    included_in_deck: bool = Field(alias="includedInDeck")


class DeckCard(CardRecord):
    """A card as it appears in a deck: card data plus deck-specific info."""
    quantity: int = 1
    categories: List[CategoryMembership] = Field(default_factory=list)


class DeckOwner(Record):
    username: Optional[str] = None


class DeckInfo(Record):
    id: int
    name: str
    description: str = ""
    format: str = "Unknown"
    owner: DeckOwner = Field(default_factory=DeckOwner)
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class DeckRecord(Record):
    deck: DeckInfo
    cards: List[DeckCard] = Field(default_factory=list)

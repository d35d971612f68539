"""
Archidekt client: fetches a deck and fills in full card data from Scryfall.
"""

import logging
from typing import Dict, List

from scryfall_mcp import config
from scryfall_mcp.errors import UpstreamError
from scryfall_mcp.fetcher import RateLimitedFetcher
from scryfall_mcp.models import (
    CategoryMembership,
    DeckCard,
    DeckInfo,
    DeckOwner,
    DeckRecord,
)
from scryfall_mcp.scryfall_client import ScryfallClient

logger = logging.getLogger(__name__)

# Archidekt reports formats as small integers. This table hasn't been
# checked against Archidekt's documentation; code 3 is Commander.
FORMAT_LABELS: Dict[int, str] = {
    1: "Standard",
    2: "Modern",
    3: "Commander",
    4: "Vintage",
    5: "Legacy",
    6: "Pioneer",
    7: "Historic",
    8: "Pauper",
}

UNKNOWN_CATEGORY = {"name": "Unknown Category", "includedInDeck": True}


def format_label(code) -> str:
    """Maps Archidekt's numeric format code to a readable name."""
    return FORMAT_LABELS.get(code, "Unknown")


def _card_name(entry: dict) -> str:
    return entry["card"]["oracleCard"]["name"]


def resolve_categories(names: List[str], deck_categories: List[dict]) -> List[CategoryMembership]:
    """
    Looks up each category name in the deck's category list.

    Names the deck doesn't define become "Unknown Category", counted as
    part of the deck.
    """
    resolved = []
    for name in names:
        category = next(
            (c for c in deck_categories if c.get("name") == name),
            UNKNOWN_CATEGORY,
        )
        resolved.append(CategoryMembership(
            category_name=category["name"],
            included_in_deck=category.get("includedInDeck", True),
        ))
    return resolved


class ArchidektClient:
    """
    Args:
        fetcher: Shared rate-limited fetcher
        scryfall_client: Used to resolve each card in the deck (cache first)
    """

    def __init__(self, fetcher: RateLimitedFetcher, scryfall_client: ScryfallClient):
        self.fetcher = fetcher
        self.scryfall_client = scryfall_client

    async def get_deck(self, deck_id: str) -> DeckRecord:
        """
        Fetches an Archidekt deck with full card data for every card in it.

        Each distinct card is resolved once, in the order it first appears,
        one card at a time. Quantity and categories come from the card's
        first entry in the deck list.

        Raises:
            UpstreamError: If the deck (or one of its cards) can't be fetched
        """
        url = f"{config.ARCHIDEKT_API}/decks/{deck_id}/"
        try:
            response = await self.fetcher.fetch(url)
            if not response.is_success:
                raise UpstreamError(
                    f"Archidekt API error: {response.status_code} {response.reason_phrase}"
                )
            deck_data = response.json()

            raw_cards = deck_data.get("cards") or []
            deck_categories = deck_data.get("categories") or []

            # First entry per name, in deck order
            first_entries: Dict[str, dict] = {}
            for entry in raw_cards:
                first_entries.setdefault(_card_name(entry), entry)

            cards = []
            for card_name, entry in first_entries.items():
                card = await self.scryfall_client.get_card_by_name(card_name)
                cards.append(DeckCard(
                    **card.model_dump(),
                    quantity=entry.get("quantity") or 1,
                    categories=resolve_categories(entry.get("categories") or [], deck_categories),
                ))

            owner = deck_data.get("owner") or {}
            deck = DeckInfo(
                id=deck_data["id"],
                name=deck_data["name"],
                description=deck_data.get("description") or "",
                format=format_label(deck_data.get("deckFormat")),
                owner=DeckOwner(username=owner.get("username")),
                created_at=deck_data.get("createdAt"),
                updated_at=deck_data.get("updatedAt"),
            )
        except Exception as e:
            raise UpstreamError(f"Failed to fetch deck from Archidekt: {e}") from e

        logger.info("Fetched deck %s (%d distinct cards)", deck_id, len(cards))
        return DeckRecord(deck=deck, cards=cards)

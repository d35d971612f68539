"""
Scryfall client: card lookups, rulings, searches, and similar commanders
from EDHREC.

Card lookups read through the on-disk cache; only cache misses reach the
network. Rulings and similar cards are nice-to-have enrichment, so their
failures come back as empty lists instead of errors.
"""

import logging
from typing import List, Literal, Optional

import httpx
from pydantic import ValidationError

from scryfall_mcp import config
from scryfall_mcp.cache import CardCache, slugify
from scryfall_mcp.errors import UpstreamError
from scryfall_mcp.fetcher import RateLimitedFetcher
from scryfall_mcp.models import (
    CardRecord,
    ImageUris,
    Ruling,
    SearchResultEnvelope,
    SimilarCardRecord,
)

logger = logging.getLogger(__name__)

UniqueMode = Literal["cards", "art", "prints"]

SortOrder = Literal[
    "name", "set", "released", "rarity", "color", "usd", "tix", "eur",
    "cmc", "power", "toughness", "edhrec", "penny", "artist", "review",
]


def _status_message(response: httpx.Response) -> str:
    return f"Scryfall API error: {response.status_code} {response.reason_phrase}"


class ScryfallClient:
    """
    Talks to Scryfall (and EDHREC for similar cards).

    Args:
        fetcher: Shared rate-limited fetcher
        cache: Card cache to read through
    """

    def __init__(self, fetcher: RateLimitedFetcher, cache: CardCache):
        self.fetcher = fetcher
        self.cache = cache

    # =========================================================================
    # CARD LOOKUP
    # =========================================================================

    def _get_cached_card(self, card_name: str) -> Optional[CardRecord]:
        cached = self.cache.get_card(card_name)
        if cached is None:
            return None
        try:
            return CardRecord.model_validate(cached)
        except ValidationError as e:
            logger.warning("Ignoring malformed cache entry for %s: %s", card_name, e)
            return None

    async def get_card_by_name(self, card_name: str) -> CardRecord:
        """
        Gets a card by name, from the cache if we've seen it before.

        Uses Scryfall's fuzzy matching, so small typos still resolve. The
        cache is keyed on the name exactly as given.

        Raises:
            UpstreamError: If Scryfall doesn't return the card
        """
        cached = self._get_cached_card(card_name)
        if cached is not None:
            logger.debug("Cache hit for card: %s", card_name)
            return cached

        params = httpx.QueryParams({"fuzzy": card_name})
        url = f"{config.SCRYFALL_API}/cards/named?{params}"
        try:
            response = await self.fetcher.fetch(url)
            if not response.is_success:
                raise UpstreamError(_status_message(response))
            card = CardRecord.from_scryfall(response.json())
        except Exception as e:
            raise UpstreamError(f"Failed to fetch card data for {card_name}: {e}") from e

        self.cache.put_card(card_name, card.to_json_dict())
        return card

    # =========================================================================
    # RULINGS
    # =========================================================================

    async def get_rulings(self, rulings_uri: str) -> List[Ruling]:
        """
        Fetches the official rulings at `rulings_uri`.

        Returns an empty list if anything goes wrong.
        """
        try:
            response = await self.fetcher.fetch(rulings_uri)
            if not response.is_success:
                raise UpstreamError(_status_message(response))
            return [
                Ruling(
                    oracle_id=entry.get("oracle_id"),
                    source=entry.get("source"),
                    comment=entry.get("comment"),
                )
                for entry in response.json().get("data", [])
            ]
        except Exception as e:
            logger.warning("Could not fetch rulings from %s: %s", rulings_uri, e)
            return []

    # =========================================================================
    # SIMILAR CARDS (EDHREC)
    # =========================================================================

    async def _fetch_similar_cards(self, card_name: str) -> Optional[List[SimilarCardRecord]]:
        """Returns None when EDHREC can't tell us anything."""
        url = f"{config.EDHREC_API}/pages/commanders/{slugify(card_name)}.json"
        try:
            response = await self.fetcher.fetch(url)
            if not response.is_success:
                logger.info("No EDHREC page for %s (%s)", card_name, response.status_code)
                return None
            data = response.json()
        except Exception as e:
            logger.warning("Could not fetch similar cards for %s: %s", card_name, e)
            return None

        similar = data.get("similar") if isinstance(data, dict) else None
        if not isinstance(similar, list):
            return []

        cards = []
        for entry in similar:
            # EDHREC occasionally returns placeholder entries without a name
            if not isinstance(entry, dict) or not entry.get("name"):
                continue

            card = SimilarCardRecord(
                name=entry["name"],
                color_identity=entry.get("color_identity"),
                cmc=entry.get("cmc"),
                type=entry.get("primary_type") or entry.get("type"),
            )
            images = entry.get("image_uris")
            if images:
                first = images[0] or {}
                card.image_uris = ImageUris(small=first.get("small"), normal=first.get("normal"))
            cards.append(card)
        return cards

    def _get_cached_similar_cards(self, card_name: str) -> Optional[List[SimilarCardRecord]]:
        cached = self.cache.get_similar_cards(card_name)
        if cached is None:
            return None
        try:
            return [SimilarCardRecord.model_validate(card) for card in cached]
        except ValidationError as e:
            logger.warning("Ignoring malformed similar cards cache for %s: %s", card_name, e)
            return None

    async def get_similar_cards(self, card_name: str) -> List[SimilarCardRecord]:
        """
        Gets commanders EDHREC lists as similar to `card_name`.

        Results (even empty ones) are cached for a year. Never raises;
        failures come back as an empty list and aren't cached.
        """
        try:
            cached = self._get_cached_similar_cards(card_name)
            if cached is not None:
                return cached

            cards = await self._fetch_similar_cards(card_name)
            if cards is None:
                return []

            self.cache.put_similar_cards(card_name, [card.to_json_dict() for card in cards])
            return cards
        except Exception as e:
            logger.warning("Similar cards lookup failed for %s: %s", card_name, e)
            return []

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search_cards(
        self,
        query: str,
        max_results: int = config.DEFAULT_MAX_RESULTS,
        unique: UniqueMode = "cards",
        order: SortOrder = "name",
        include_extras: bool = False,
    ) -> SearchResultEnvelope:
        """
        Runs a Scryfall search and returns at most `max_results` cards.

        A search with no matches (Scryfall answers 404) is an empty result,
        not an error. `max_results` is capped at 175; anything below 1 means
        the default of 25.

        Raises:
            UpstreamError: For any other failed request
        """
        if not max_results or max_results < 1:
            max_results = config.DEFAULT_MAX_RESULTS
        limit = min(max_results, config.MAX_RESULTS_CEILING)

        api_params = {
            "q": query,
            "unique": unique or "cards",
            "order": order or "name",
            "format": "json",
        }
        if include_extras:
            api_params["include_extras"] = "true"
        url = f"{config.SCRYFALL_API}/cards/search?{httpx.QueryParams(api_params)}"

        try:
            response = await self.fetcher.fetch(url)
            if response.status_code == 404:
                return SearchResultEnvelope()
            if not response.is_success:
                raise UpstreamError(_status_message(response))

            data = response.json()
            return SearchResultEnvelope(
                object=data.get("object", "list"),
                total_cards=data.get("total_cards", 0),
                has_more=data.get("has_more", False),
                next_page=data.get("next_page"),
                data=[CardRecord.from_scryfall(card) for card in data.get("data", [])[:limit]],
            )
        except Exception as e:
            raise UpstreamError(f"Failed to search cards: {e}") from e

"""
On-disk cache for card data and similar-card lists.

Layout under the cache root:

    <root>/<percent-encoded card name>.json      card data, never expires
    <root>/similar/<slugified card name>.json    {"cards": [...], "timestamp": "..."}

Nothing here ever raises to the caller. A file we can't read is a cache
miss and a file we can't write is simply not cached; both get logged.
"""

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, List, Optional
from urllib.parse import quote

from scryfall_mcp import config

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone besides letters, digits and "_.-~"
_URI_COMPONENT_SAFE = "!*'()"


def encode_card_name(name: str) -> str:
    """Percent-encodes a card name for use as a file name."""
    return quote(name, safe=_URI_COMPONENT_SAFE)


def slugify(name: str) -> str:
    """
    Turns a card name into the slug EDHREC uses in its URLs.

    "Omnath, Locus of Rage" -> "omnath-locus-of-rage"
    """
    slug = re.sub(r"\s+", "-", name.lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {value!r}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class JsonFileStore:
    """
    A directory of JSON files addressed by key.

    Args:
        directory: Where the files live
        key_func: Maps a caller's key to a file stem
        is_fresh: Optional predicate on the decoded value; stale values read as None
    """

    def __init__(
        self,
        directory: Path,
        key_func: Callable[[str], str],
        is_fresh: Optional[Callable[[Any], bool]] = None,
    ):
        self.directory = Path(directory)
        self.key_func = key_func
        self.is_fresh = is_fresh

    def path_for(self, key: str) -> Path:
        return self.directory / f"{self.key_func(key)}.json"

    def ensure(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                value = json.load(f)
            if self.is_fresh is not None and not self.is_fresh(value):
                logger.debug("Cache entry for %r is stale", key)
                return None
            return value
        except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning("Error reading cache for %s: %s", key, e)
            return None

    def put(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Error caching %s: %s", key, e)


class CardCache:
    """
    The two caches the clients read through.

    Card data is kept forever (delete the file to refresh it). Similar-card
    lists expire `similar_ttl_days` after they were written.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        similar_ttl_days: int = config.SIMILAR_CARDS_TTL_DAYS,
        now: Callable[[], datetime] = utc_now,
    ):
        self.root = Path(root) if root is not None else config.get_cache_dir()
        self.similar_ttl = timedelta(days=similar_ttl_days)
        self.now = now

        self.cards = JsonFileStore(self.root, encode_card_name)
        self.similar = JsonFileStore(self.root / "similar", slugify, is_fresh=self._similar_is_fresh)

    def ensure_dirs(self) -> None:
        """Creates the cache directories if they don't exist yet."""
        self.cards.ensure()
        self.similar.ensure()

    def _similar_is_fresh(self, envelope: dict) -> bool:
        written = parse_timestamp(envelope["timestamp"])
        return self.now() - written < self.similar_ttl

    # -------------------------------------------------------------------------
    # Card data
    # -------------------------------------------------------------------------

    def get_card(self, card_name: str) -> Optional[dict]:
        return self.cards.get(card_name)

    def put_card(self, card_name: str, data: dict) -> None:
        self.cards.put(card_name, data)

    # -------------------------------------------------------------------------
    # Similar cards
    # -------------------------------------------------------------------------

    def get_similar_cards(self, card_name: str) -> Optional[List[dict]]:
        envelope = self.similar.get(card_name)
        if envelope is None:
            return None
        cards = envelope.get("cards")
        if not isinstance(cards, list):
            logger.warning("Similar cards cache for %s has no card list", card_name)
            return None
        return cards

    def put_similar_cards(self, card_name: str, cards: List[dict]) -> None:
        self.similar.put(card_name, {
            "cards": cards,
            "timestamp": format_timestamp(self.now()),
        })

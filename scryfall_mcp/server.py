"""
Scryfall MCP Server
===================
An MCP server that provides tools for querying Magic: The Gathering data
from Scryfall (card database), EDHREC (similar commanders) and Archidekt
(decklists).

This server enables Claude to help with:
- Card lookups, with optional rulings and similar commanders
- Card searches using Scryfall's powerful syntax
- Reading an Archidekt deck with full card details

Card data is cached under ~/.scryfall-mcp-cache (see config.py) and all
outbound requests are spaced at least 75ms apart.

Setup:
1. pip install -e .
2. Add `scryfall-mcp` (or `python -m scryfall_mcp`) to Claude Desktop config
"""

import asyncio
import json
import logging
import sys
from typing import Annotated, Any, Dict, List, Optional, Type

from mcp.server.fastmcp import FastMCP
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS, CallToolRequest, ErrorData
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from scryfall_mcp import config
from scryfall_mcp.archidekt_client import ArchidektClient
from scryfall_mcp.cache import CardCache
from scryfall_mcp.fetcher import RateLimitedFetcher
from scryfall_mcp.scryfall_client import ScryfallClient, SortOrder, UniqueMode

logger = logging.getLogger(__name__)

# =============================================================================
# SERVER INITIALIZATION
# =============================================================================

mcp = FastMCP("scryfall-server")

TOOL_ANNOTATIONS = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": True
}


# =============================================================================
# INPUT MODELS
# =============================================================================

class GetCardDataInput(BaseModel):
    """Input for looking up one or more cards by name."""
    model_config = ConfigDict(str_strip_whitespace=True)

    card_names: List[str] = Field(
        ...,
        description="List of card names to fetch data for",
        min_length=1
    )
    include_rulings: bool = Field(default=False, description="Whether to include card rulings")
    include_similar_cards: bool = Field(
        default=False,
        description="Whether to include a list of similar cards in each response"
    )

    @field_validator('card_names')
    @classmethod
    def validate_card_names(cls, v: List[str]) -> List[str]:
        """Reject blank card names rather than silently dropping them."""
        if any(not name for name in v):
            raise ValueError("card names must not be blank")
        return v


class SearchCardsInput(BaseModel):
    """Input for a Scryfall search."""
    model_config = ConfigDict(str_strip_whitespace=True)

    query: str = Field(..., description="Scryfall search query", min_length=1)
    max_results: int = Field(
        default=config.DEFAULT_MAX_RESULTS,
        description="Maximum number of results to return (default: 25, max: 175)"
    )
    unique: UniqueMode = Field(default="cards", description="How to handle duplicate cards")
    order: SortOrder = Field(default="name", description="How to sort the results")
    include_extras: bool = Field(default=False, description="Include extra cards like tokens and planes")

    @field_validator('max_results', mode='before')
    @classmethod
    def default_when_not_positive(cls, v: Any) -> Any:
        """Anything below 1 means "use the default"; the client caps the top end."""
        if not isinstance(v, int) or isinstance(v, bool) or v < 1:
            return config.DEFAULT_MAX_RESULTS
        return v


class GetArchidektDeckInput(BaseModel):
    """Input for fetching an Archidekt deck."""
    model_config = ConfigDict(str_strip_whitespace=True)

    deck_id: str = Field(..., description="The Archidekt deck ID (from the deck URL)", min_length=1)


TOOL_INPUTS: Dict[str, Type[BaseModel]] = {
    "get_card_data": GetCardDataInput,
    "search_cards": SearchCardsInput,
    "get_archidekt_deck": GetArchidektDeckInput,
}


# =============================================================================
# CLIENTS (Lazy Loading)
# =============================================================================

class Clients:
    """Everything the tools share: one fetcher, one cache, one of each client."""

    def __init__(self, cache: CardCache, fetcher: RateLimitedFetcher):
        self.cache = cache
        self.fetcher = fetcher
        self.scryfall = ScryfallClient(fetcher, cache)
        self.archidekt = ArchidektClient(fetcher, self.scryfall)


_clients: Optional[Clients] = None


def get_clients() -> Clients:
    """
    Builds the shared clients on first use.

    Lazy so that importing this module doesn't touch the environment or
    the filesystem.
    """
    global _clients

    if _clients is None:
        _clients = Clients(CardCache(), RateLimitedFetcher())
    return _clients


def set_clients(clients: Optional[Clients]) -> None:
    """Swaps the shared clients (None resets to the defaults on next use)."""
    global _clients
    _clients = clients


# =============================================================================
# SHARED UTILITIES
# =============================================================================

def _invalid_params(message: str) -> McpError:
    return McpError(ErrorData(code=INVALID_PARAMS, message=message))


def _error_payload(message: str) -> str:
    """The JSON we return when a tool fails after its arguments checked out."""
    return json.dumps({"error": True, "message": message}, indent=2)


def _parse_arguments(model: Type[BaseModel], arguments: Dict[str, Any]) -> BaseModel:
    """
    Validates tool arguments against the tool's input model.

    Raises:
        McpError: INVALID_PARAMS, naming every argument that failed
    """
    try:
        return model.model_validate(arguments)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'arguments'}: {error['msg']}"
            for error in e.errors()
        )
        raise _invalid_params(f"Invalid arguments: {problems}") from e


# =============================================================================
# SCRYFALL TOOLS
# =============================================================================

@mcp.tool(
    name="get_card_data",
    description="Get Magic: The Gathering card data from Scryfall",
    annotations={"title": "Get MTG Card Data", **TOOL_ANNOTATIONS}
)
async def get_card_data(
    card_names: Annotated[List[str], Field(description="List of card names to fetch data for")],
    include_rulings: Annotated[bool, Field(description="Whether to include card rulings")] = False,
    include_similar_cards: Annotated[
        bool,
        Field(description="Whether to include a list of similar cards in each response")
    ] = False,
) -> str:
    """
    Look up one or more cards by name.

    Names are fuzzy-matched by Scryfall, and every card we've fetched before
    comes straight from the local cache. Lookups run concurrently; the rate
    limiter keeps them polite.

    Args:
        card_names: Card names, answered in the same order
        include_rulings: Attach official rulings to each card
        include_similar_cards: Attach EDHREC's similar commanders to each card

    Returns:
        str: JSON array of card objects, or an error object
    """
    params = _parse_arguments(GetCardDataInput, {
        "card_names": card_names,
        "include_rulings": include_rulings,
        "include_similar_cards": include_similar_cards,
    })

    clients = get_clients()
    try:
        clients.cache.ensure_dirs()

        async def lookup(card_name: str) -> dict:
            card = await clients.scryfall.get_card_by_name(card_name)
            if params.include_rulings and card.rulings_uri:
                card.rulings = await clients.scryfall.get_rulings(card.rulings_uri)
            if params.include_similar_cards:
                # EDHREC pages are keyed on the name the caller used
                card.similar_cards = await clients.scryfall.get_similar_cards(card_name)
            return card.to_json_dict()

        cards = await asyncio.gather(*(lookup(name) for name in params.card_names))
        return json.dumps(cards, indent=2)

    except McpError:
        raise
    except Exception as e:
        logger.error("get_card_data failed: %s", e)
        return _error_payload(f"Error fetching card data: {e}")


@mcp.tool(
    name="search_cards",
    description=(
        "Search for Magic: The Gathering cards using Scryfall's search syntax. "
        "Supports complex queries including: oracle text (o:), type (t:), color (c:), "
        "mana cost (m:), power/toughness (pow:/tou:), rarity (r:), set (s:), "
        "format legality (f:), and more. Examples: 'o:\"create\" o:\"token\"' for token "
        "generators, 't:equipment' for equipment, 'c:red pow>=4' for big red creatures, "
        "'o:flying t:creature' for flying creatures. Use quotes for multi-word phrases. "
        "See Scryfall syntax guide (https://scryfall.com/docs/syntax) for full reference."
    ),
    annotations={"title": "Search MTG Cards on Scryfall", **TOOL_ANNOTATIONS}
)
async def search_cards(
    query: Annotated[str, Field(
        description=(
            "Scryfall search query using their syntax "
            "(e.g., 'o:\"create\" o:\"token\"', 't:equipment', 'c:red pow>=4')"
        )
    )],
    max_results: Annotated[int, Field(
        description="Maximum number of results to return (default: 25, max: 175)"
    )] = config.DEFAULT_MAX_RESULTS,
    unique: Annotated[UniqueMode, Field(
        description=(
            "How to handle duplicate cards: 'cards' (default, remove duplicates), "
            "'art' (unique artwork), 'prints' (all prints)"
        )
    )] = "cards",
    order: Annotated[SortOrder, Field(description="How to sort the results (default: 'name')")] = "name",
    include_extras: Annotated[bool, Field(
        description="Include extra cards like tokens and planes"
    )] = False,
) -> str:
    """
    Search for cards with Scryfall's query syntax.

    Common search operators:
    - c: or color: = card color (c:blue, c:UR for blue/red)
    - t: or type: = card type (t:creature, t:instant)
    - o: or oracle: = oracle text contains (o:"draw a card")
    - cmc: or mv: = mana value (cmc<=3, cmc=5)
    - f: or format: = format legality (f:commander)

    Returns:
        str: JSON with total_cards, has_more and the (truncated) cards list
    """
    params = _parse_arguments(SearchCardsInput, {
        "query": query,
        "max_results": max_results,
        "unique": unique,
        "order": order,
        "include_extras": include_extras,
    })

    clients = get_clients()
    try:
        clients.cache.ensure_dirs()
        result = await clients.scryfall.search_cards(
            params.query,
            max_results=params.max_results,
            unique=params.unique,
            order=params.order,
            include_extras=params.include_extras,
        )
        return json.dumps({
            "total_cards": result.total_cards,
            "has_more": result.has_more,
            "cards": [card.to_json_dict() for card in result.data]
        }, indent=2)

    except McpError:
        raise
    except Exception as e:
        logger.error("search_cards failed: %s", e)
        return _error_payload(f"Error searching cards: {e}")


# =============================================================================
# ARCHIDEKT TOOLS
# =============================================================================

@mcp.tool(
    name="get_archidekt_deck",
    description="Fetch a Magic: The Gathering deck from Archidekt and get detailed card information.",
    annotations={"title": "Get Archidekt Deck", **TOOL_ANNOTATIONS}
)
async def get_archidekt_deck(
    deck_id: Annotated[str, Field(description="The Archidekt deck ID (from the deck URL)")],
) -> str:
    """
    Fetch a deck from Archidekt with full Scryfall data for every card.

    Args:
        deck_id: The number in the deck's URL (archidekt.com/decks/<id>/...)

    Returns:
        str: JSON with deck details and its cards (quantity and categories included)
    """
    params = _parse_arguments(GetArchidektDeckInput, {"deck_id": deck_id})

    clients = get_clients()
    try:
        clients.cache.ensure_dirs()
        deck = await clients.archidekt.get_deck(params.deck_id)
        return json.dumps(deck.to_json_dict())

    except McpError:
        raise
    except Exception as e:
        logger.error("get_archidekt_deck failed for %s: %s", deck_id, e)
        return _error_payload(f"Error fetching Archidekt deck: {e}")


# =============================================================================
# PROTOCOL ERRORS
# =============================================================================

# FastMCP reports anything a tool raises as an isError result, so bad
# arguments are checked here, ahead of the tool, and McpError reaches the
# client as a JSON-RPC error carrying INVALID_PARAMS.
_call_tool = mcp._mcp_server.request_handlers[CallToolRequest]


async def _call_tool_checking_arguments(req: CallToolRequest):
    model = TOOL_INPUTS.get(req.params.name)
    if model is not None:
        _parse_arguments(model, req.params.arguments or {})
    return await _call_tool(req)


mcp._mcp_server.request_handlers[CallToolRequest] = _call_tool_checking_arguments


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main():
    # stdout carries the MCP protocol, so logs go to stderr
    logging.basicConfig(
        stream=sys.stderr,
        level=config.get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.info("Scryfall MCP server running on stdio (cache: %s)", config.get_cache_dir())

    # Run the MCP server using stdio transport (for local use)
    mcp.run()


if __name__ == "__main__":
    main()

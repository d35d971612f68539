"""
Configuration
=============
Constants for the upstream APIs plus a few knobs that can be overridden
with environment variables (or a .env file next to where the server runs).

Environment Variables:
    SCRYFALL_MCP_CACHE_DIR     - Where cached card JSON lives (default ~/.scryfall-mcp-cache)
    SCRYFALL_MCP_RATE_LIMIT_MS - Minimum gap between outbound requests (default 75)
    SCRYFALL_MCP_TIMEOUT       - HTTP timeout in seconds (default 30)
    SCRYFALL_MCP_LOG_LEVEL     - Logging level for stderr output (default WARNING)
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# UPSTREAM APIS
# =============================================================================

SCRYFALL_API = "https://api.scryfall.com"
EDHREC_API = "https://json.edhrec.com"
ARCHIDEKT_API = "https://archidekt.com/api"

# Scryfall asks every client to identify itself
USER_AGENT = "MCP-Scryfall-Client/1.0"

# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_RATE_LIMIT_MS = 75
DEFAULT_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "WARNING"
CACHE_DIR_NAME = ".scryfall-mcp-cache"

# Similar-card lists barely change, so they're kept for a year
SIMILAR_CARDS_TTL_DAYS = 365

# Search result limits
DEFAULT_MAX_RESULTS = 25
MAX_RESULTS_CEILING = 175


def _env_number(name: str, default, converter):
    """Reads a numeric env var, ignoring values that don't parse."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return converter(value)
    except (ValueError, TypeError):
        return default


def get_cache_dir() -> Path:
    """Root of the on-disk cache."""
    override = os.getenv("SCRYFALL_MCP_CACHE_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / CACHE_DIR_NAME


def get_rate_limit_ms() -> int:
    return _env_number("SCRYFALL_MCP_RATE_LIMIT_MS", DEFAULT_RATE_LIMIT_MS, int)


def get_timeout() -> float:
    return _env_number("SCRYFALL_MCP_TIMEOUT", DEFAULT_TIMEOUT, float)


def get_log_level() -> str:
    level = os.getenv("SCRYFALL_MCP_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        return DEFAULT_LOG_LEVEL
    return level

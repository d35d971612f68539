"""
Scryfall MCP Server
===================
An MCP server that exposes Magic: The Gathering data from Scryfall (card
database), EDHREC (similar commanders) and Archidekt (decklists) as tools
for Claude, with a local on-disk cache and polite rate limiting.
"""

__version__ = "0.1.0"

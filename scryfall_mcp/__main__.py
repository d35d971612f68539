from scryfall_mcp.server import main

main()

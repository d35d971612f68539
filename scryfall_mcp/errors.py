"""Exception kinds raised by the upstream API clients."""


class UpstreamError(Exception):
    """
    Raised when Scryfall or Archidekt can't give us the data we asked for.

    The message always names what we were fetching (card name, deck id)
    and what went wrong upstream (HTTP status or transport message).
    """
    pass

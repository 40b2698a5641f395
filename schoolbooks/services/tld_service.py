import logging

from flask import current_app

from schoolbooks.errors import HttpClientError

log = logging.getLogger(__name__)

CACHE_KEY = "tlds"


def refresh_tlds() -> list[str] | None:
    """Download the IANA TLD list and cache it. Returns None on failure."""
    cfg = current_app.config
    client = current_app.extensions["http_client"]
    try:
        content = client.get(cfg["TLD_SOURCE_URL"], headers={"Accept": "text/plain"})
    except HttpClientError as e:
        log.error("Failed to fetch TLDs: %s", e)
        return None

    lines = content.split("\n")
    # first line is the "# Version ..." header
    tlds = [line.strip() for line in lines[1:] if line.strip()]
    if not tlds:
        log.error("Failed to fetch TLDs: empty list")
        return None

    current_app.extensions["cache"].set(CACHE_KEY, tlds, cfg["TLD_CACHE_TTL"])
    log.info("TLD list updated (%d entries)", len(tlds))
    return tlds


def get_tlds() -> list[str] | None:
    return current_app.extensions["cache"].get(CACHE_KEY)

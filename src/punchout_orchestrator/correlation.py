"""Correlation token extraction from gateway responses."""

from __future__ import annotations

import re

_BUYER_COOKIE_RE = re.compile(r"<BuyerCookie>([^<]+)</BuyerCookie>")


def extract_correlation_token(raw_response: str | None) -> str | None:
    """Return the first ``<BuyerCookie>`` value in *raw_response*.

    Returns ``None`` when the response is empty, has no such element,
    or the element holds only whitespace.
    """
    if not raw_response:
        return None
    match = _BUYER_COOKIE_RE.search(raw_response)
    if match is None:
        return None
    token = match.group(1).strip()
    return token or None

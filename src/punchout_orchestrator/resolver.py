"""Catalog URL resolution from inconsistent response shapes."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any, Protocol

from src.shared.constants import FAILED_MARKER_PREFIX
from src.shared.errors import AppError
from src.shared.models.punchout import AuditEntry, Direction, SessionRecord

logger = logging.getLogger(__name__)

_URL_KEYS: tuple[str, ...] = ("start_url", "catalogUrl")


class SessionSource(Protocol):
    """Lookup of session records by correlation token."""

    async def get_session(self, session_key: str) -> SessionRecord:
        ...


def usable_url(value: Any) -> str | None:
    """Return *value* if it is a non-empty string without the failure marker."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.startswith(FAILED_MARKER_PREFIX):
        return None
    return value


def catalog_url_from_entries(entries: Iterable[AuditEntry]) -> str | None:
    """Read the catalog URL from the first outbound Mule/Catalog call.

    The response body is parsed as JSON and ``start_url`` is preferred
    over ``catalogUrl``.  An unparsable body yields ``None``.
    """
    entry = next(
        (
            e for e in entries
            if e.direction == Direction.OUTBOUND and e.is_catalog_call
        ),
        None,
    )
    if entry is None or not entry.response_body:
        return None

    try:
        body = json.loads(entry.response_body)
    except ValueError:
        logger.debug("Catalog response body for %s is not JSON", entry.session_key)
        return None
    if not isinstance(body, dict):
        return None

    for key in _URL_KEYS:
        if body.get(key):
            return usable_url(body[key])
    return None


class CatalogUrlResolver:
    """Finds the URL the operator should be redirected to.

    Priority: the outbound Mule/Catalog audit entry, then the session
    record's ``catalog`` field.  Values prefixed ``FAILED`` are the
    backend's own failure marker and count as absent.
    """

    def __init__(self, sessions: SessionSource | None = None) -> None:
        self._sessions = sessions

    async def resolve(
        self, session_key: str, entries: Iterable[AuditEntry]
    ) -> str | None:
        url = catalog_url_from_entries(entries)
        if url is not None:
            logger.info("Catalog URL for %s resolved from audit log", session_key)
            return url

        if self._sessions is None:
            return None
        try:
            session = await self._sessions.get_session(session_key)
        except AppError as exc:
            logger.warning("Session lookup for %s failed: %s", session_key, exc.detail)
            return None

        url = usable_url(session.catalog)
        if url is not None:
            logger.info("Catalog URL for %s resolved from session record", session_key)
        return url

"""Tests for catalog URL resolution."""
from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from src.punchout_orchestrator.resolver import (
    CatalogUrlResolver,
    catalog_url_from_entries,
    usable_url,
)
from src.shared.errors import NotFoundError
from src.shared.models.punchout import Direction, SessionRecord


def _sessions(catalog: str | None) -> AsyncMock:
    source = AsyncMock()
    source.get_session.return_value = SessionRecord(session_key="S1", catalog=catalog)
    return source


class TestUsableUrl:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("https://cat.example.com/start", "https://cat.example.com/start"),
            ("  https://x  ", "https://x"),
            ("", None),
            ("   ", None),
            ("FAILED: mule timeout", None),
            ("FAILED", None),
            (None, None),
            (42, None),
        ],
    )
    def test_usable_url(self, value, expected) -> None:
        assert usable_url(value) == expected


class TestFromEntries:
    def test_start_url_preferred(self, make_entry) -> None:
        body = json.dumps({"start_url": "https://a", "catalogUrl": "https://b"})
        assert catalog_url_from_entries([make_entry("Mule Service", response_body=body)]) == "https://a"

    def test_catalog_url_fallback(self, make_entry) -> None:
        body = json.dumps({"catalogUrl": "https://b"})
        assert catalog_url_from_entries([make_entry("Catalog Service", response_body=body)]) == "https://b"

    def test_first_outbound_catalog_entry_used(self, make_entry) -> None:
        entries = [
            make_entry("Auth Service", response_body=json.dumps({"start_url": "https://auth"})),
            make_entry(
                "Mule Service",
                direction=Direction.INBOUND,
                response_body=json.dumps({"start_url": "https://inbound"}),
            ),
            make_entry("Mule Service", response_body=json.dumps({"start_url": "https://first"})),
            make_entry("Mule Service", response_body=json.dumps({"start_url": "https://second"})),
        ]
        assert catalog_url_from_entries(entries) == "https://first"

    def test_unparsable_body(self, make_entry) -> None:
        assert catalog_url_from_entries([make_entry("Mule Service", response_body="<html>")]) is None

    def test_non_object_body(self, make_entry) -> None:
        assert catalog_url_from_entries([make_entry("Mule Service", response_body="[1, 2]")]) is None

    def test_failed_marker(self, make_entry) -> None:
        body = json.dumps({"start_url": "FAILED - no route"})
        assert catalog_url_from_entries([make_entry("Mule Service", response_body=body)]) is None

    def test_no_entries(self) -> None:
        assert catalog_url_from_entries([]) is None


class TestCatalogUrlResolver:
    @pytest.mark.asyncio
    async def test_audit_entry_wins(self, make_entry) -> None:
        sessions = _sessions("https://session")
        body = json.dumps({"start_url": "https://audit"})
        url = await CatalogUrlResolver(sessions).resolve(
            "S1", [make_entry("Mule Service", response_body=body)]
        )
        assert url == "https://audit"
        sessions.get_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_session_fallback(self, make_entry) -> None:
        sessions = _sessions("https://session")
        url = await CatalogUrlResolver(sessions).resolve(
            "S1", [make_entry("Mule Service", response_body="not json")]
        )
        assert url == "https://session"
        sessions.get_session.assert_awaited_once_with("S1")

    @pytest.mark.asyncio
    async def test_failed_audit_value_falls_through_to_session(self, make_entry) -> None:
        sessions = _sessions("https://session")
        body = json.dumps({"start_url": "FAILED: x"})
        url = await CatalogUrlResolver(sessions).resolve(
            "S1", [make_entry("Mule Service", response_body=body)]
        )
        assert url == "https://session"
        sessions.get_session.assert_awaited_once_with("S1")

    @pytest.mark.asyncio
    async def test_failed_in_both_sources(self, make_entry) -> None:
        body = json.dumps({"start_url": "FAILED"})
        url = await CatalogUrlResolver(_sessions("FAILED: lookup")).resolve(
            "S1", [make_entry("Mule Service", response_body=body)]
        )
        assert url is None

    @pytest.mark.asyncio
    async def test_session_lookup_error(self) -> None:
        sessions = AsyncMock()
        sessions.get_session.side_effect = NotFoundError("gone")
        assert await CatalogUrlResolver(sessions).resolve("S1", []) is None

    @pytest.mark.asyncio
    async def test_without_session_source(self) -> None:
        assert await CatalogUrlResolver().resolve("S1", []) is None

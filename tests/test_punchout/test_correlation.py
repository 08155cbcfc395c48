"""Tests for correlation token extraction."""
from __future__ import annotations

import pytest

from src.punchout_orchestrator.correlation import extract_correlation_token


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("<cXML><BuyerCookie>SESSION_DEV_c_1</BuyerCookie></cXML>", "SESSION_DEV_c_1"),
        ("<BuyerCookie>  padded  </BuyerCookie>", "padded"),
        ("<BuyerCookie>first</BuyerCookie><BuyerCookie>second</BuyerCookie>", "first"),
        ("<cXML><Status code=\"200\"/></cXML>", None),
        ("<BuyerCookie></BuyerCookie>", None),
        ("<BuyerCookie>   </BuyerCookie>", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_correlation_token(raw, expected):
    assert extract_correlation_token(raw) == expected

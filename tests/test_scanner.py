"""
Tests for CandidateScanner
"""

import pytest

from cartllm_core.document import HtmlDocument
from cartllm_core.scanner import CandidateScanner

from conftest import FakeDocument, snapshot


class TestCandidateScanner:

    @pytest.mark.asyncio
    async def test_checkout_page_candidates(self, checkout_html):
        candidates = await CandidateScanner().scan(HtmlDocument(checkout_html))
        texts = [c.text for c in candidates]
        assert texts == [
            "Subtotal $40.00 Shipping Free Grand Total $43.00",
            "Subtotal $40.00",
            "Grand Total $43.00",
        ]
        grand = candidates[2]
        assert grand.tag == "div"
        assert grand.class_name == "row grand"
        assert grand.selector.selector == "div.cart > div.row.grand:nth-of-type(3)"

    @pytest.mark.asyncio
    async def test_both_conditions_required(self):
        doc = FakeDocument([
            snapshot("Order summary", "div.a"),          # keyword only
            snapshot("$19.99", "div.b"),                 # currency only
            snapshot("Amount due: $19.99", "div.c"),     # both
        ])
        candidates = await CandidateScanner().scan(doc)
        assert [c.selector.selector for c in candidates] == ["div.c"]

    @pytest.mark.asyncio
    async def test_long_text_rejected(self):
        long_text = "Total $10.00 " + "x" * 100
        doc = FakeDocument([snapshot(long_text, "div.wrapper"), snapshot("Total $10.00", "span.t", tag="span")])
        candidates = await CandidateScanner().scan(doc)
        assert [c.tag for c in candidates] == ["span"]

    @pytest.mark.asyncio
    async def test_custom_text_limit(self):
        doc = FakeDocument([snapshot("Grand total is $10.00", "div.t")])
        assert await CandidateScanner(max_text_length=10).scan(doc) == []

    @pytest.mark.asyncio
    async def test_walk_failure_returns_empty(self):
        class Broken(FakeDocument):
            async def elements(self, tags=None):
                raise RuntimeError("page closed")

        assert await CandidateScanner().scan(Broken()) == []

    @pytest.mark.asyncio
    async def test_deterministic(self, checkout_html):
        doc = HtmlDocument(checkout_html)
        scanner = CandidateScanner()
        first = await scanner.scan(doc)
        second = await scanner.scan(doc)
        assert first == second

    @pytest.mark.asyncio
    async def test_zero_text_limit_is_respected(self):
        doc = FakeDocument([snapshot("Total $10.00", "div.t")])
        assert await CandidateScanner(max_text_length=0).scan(doc) == []

"""Tests for card field extraction."""

import pytest

from harvester.extraction.cards import absolutize, extract_card_records


class _FakeElement:
    def __init__(self, text=None, attributes=None):
        self.text = text
        self.attributes = attributes or {}

    async def text_content(self):
        return self.text

    async def get_attribute(self, name):
        return self.attributes.get(name)


class _FakeCard:
    def __init__(self, children, broken=()):
        self.children = children
        self.broken = set(broken)

    async def query_selector(self, selector):
        if selector in self.broken:
            raise RuntimeError("element detached")
        return self.children.get(selector)


class _FakePage:
    def __init__(self, cards=None, error=None):
        self.cards = cards or {}
        self.error = error

    async def query_selector_all(self, selector):
        if self.error:
            raise self.error
        return self.cards.get(selector, [])


FIELDS = {
    "url": ["a.link"],
    "address": [".address", "address"],
    "price": [".price"],
    "description": [".description"],
    "image": ["img"],
}


def _listing_card(n):
    return _FakeCard(
        {
            "a.link": _FakeElement(attributes={"href": f"/properties/{n}"}),
            "address": _FakeElement(text=f"  {n} High Street, London  "),
            ".price": _FakeElement(text="£350,000"),
            ".description": _FakeElement(text="Chain free, needs modernisation"),
            "img": _FakeElement(attributes={"src": "placeholder.gif", "data-src": f"/img/{n}.jpg"}),
        }
    )


class TestAbsolutize:
    def test_relative_path(self):
        assert absolutize("/properties/1", "https://www.rightmove.co.uk") == (
            "https://www.rightmove.co.uk/properties/1"
        )

    def test_absolute_url_unchanged(self):
        assert absolutize("https://cdn.example/1.jpg", "https://www.rightmove.co.uk") == (
            "https://cdn.example/1.jpg"
        )

    def test_no_base_url(self):
        assert absolutize("/x", "") == "/x"


class TestExtractCardRecords:
    @pytest.mark.asyncio
    async def test_extracts_one_record_per_card(self):
        page = _FakePage({".card": [_listing_card(1), _listing_card(2)]})
        records = await extract_card_records(
            page, ".card", FIELDS, source="rightmove", base_url="https://www.rightmove.co.uk"
        )
        assert len(records) == 2
        first = records[0]
        assert first["url"] == "https://www.rightmove.co.uk/properties/1"
        assert first["address"] == "1 High Street, London"
        assert first["price"] == "£350,000"
        assert first["source"] == "rightmove"
        assert first["scraped_at"]

    @pytest.mark.asyncio
    async def test_lazy_image_attribute_preferred(self):
        page = _FakePage({".card": [_listing_card(7)]})
        records = await extract_card_records(
            page, ".card", FIELDS, source="rightmove", base_url="https://www.rightmove.co.uk"
        )
        assert records[0]["image"] == "https://www.rightmove.co.uk/img/7.jpg"

    @pytest.mark.asyncio
    async def test_fallback_selector_used(self):
        card = _FakeCard({".address": _FakeElement(text="Flat 2, Mill Road")})
        page = _FakePage({".card": [card]})
        records = await extract_card_records(page, ".card", FIELDS, source="zoopla")
        assert records[0]["address"] == "Flat 2, Mill Road"
        assert records[0]["price"] is None

    @pytest.mark.asyncio
    async def test_empty_cards_skipped(self):
        page = _FakePage({".card": [_FakeCard({}), _listing_card(1), _FakeCard({".price": _FakeElement(text="   ")})]})
        records = await extract_card_records(page, ".card", FIELDS, source="rightmove")
        assert len(records) == 1

    @pytest.mark.asyncio
    async def test_broken_field_does_not_lose_card(self):
        card = _FakeCard({".price": _FakeElement(text="£1")}, broken={"a.link"})
        page = _FakePage({".card": [card]})
        records = await extract_card_records(page, ".card", FIELDS, source="rightmove")
        assert records[0]["price"] == "£1"
        assert records[0]["url"] is None

    @pytest.mark.asyncio
    async def test_distress_keywords_scored(self):
        page = _FakePage({".card": [_listing_card(1)]})
        records = await extract_card_records(
            page, ".card", FIELDS, source="rightmove",
            distress_keywords=["chain free", "modernisation", "auction"],
        )
        assert records[0]["distress_keywords_matched"] == ["chain free", "modernisation"]
        assert records[0]["distress_score"] == 4

    @pytest.mark.asyncio
    async def test_query_failure_returns_empty(self):
        page = _FakePage(error=RuntimeError("invalid selector"))
        assert await extract_card_records(page, "div[", FIELDS, source="rightmove") == []

    @pytest.mark.asyncio
    async def test_no_matching_cards(self):
        page = _FakePage()
        assert await extract_card_records(page, ".card", FIELDS, source="rightmove") == []

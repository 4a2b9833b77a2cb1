"""
Outpost Stock — Deck Matching Tests

Tests name matching, quality-tier offer selection, deck availability
summaries and free-text search over scraped listings.
"""

from __future__ import annotations

from decimal import Decimal

from outpost_stock.engine.matching import (
    DeckCard,
    analyze_deck,
    best_offer,
    check_availability,
    find_matches,
    search_cards,
)
from outpost_stock.models.card import ConditionOffer, ListingRecord
from tests.conftest import listing


def _graded(name: str, *offers: tuple[str, int, int], set_label: str = "CMM") -> ListingRecord:
    """Listing with several (condition, price, stock) offers."""
    return ListingRecord(
        name=name,
        collection_name="Commander Masters",
        collection_id="310",
        set_label=set_label,
        conditions=[ConditionOffer(condition=c, price_cents=p, stock=s) for c, p, s in offers],
    )


class TestFindMatches:
    def test_exact_match_preferred(self) -> None:
        cards = [listing("Sol Ring", 150, 1), listing("Sol Ring Token", 10, 1)]

        assert [c.name for c in find_matches(cards, "sol ring")] == ["Sol Ring"]

    def test_substring_match(self) -> None:
        cards = [listing("Bloodghast", 400, 1), listing("Ghast Lord", 80, 1)]

        assert [c.name for c in find_matches(cards, "ghast")] == ["Bloodghast", "Ghast Lord"]

    def test_reverse_substring_match(self) -> None:
        cards = [listing("Fire", 50, 1)]

        assert [c.name for c in find_matches(cards, "Fire // Ice")] == ["Fire"]

    def test_unpriced_listings_never_match(self) -> None:
        cards = [listing("Sol Ring", 0, 2)]

        assert find_matches(cards, "Sol Ring") == []

    def test_blank_query(self) -> None:
        assert find_matches([listing("Sol Ring", 150, 1)], "  ") == []


class TestBestOffer:
    def test_best_grade_with_stock_wins_over_cheaper_worse_grade(self) -> None:
        card = _graded("Sol Ring", ("HP", 50, 3), ("NM/M", 200, 1), ("NM/M", 180, 0))

        best = best_offer([card])

        assert best is not None
        assert best.offer.condition == "NM/M"
        assert best.offer.price_cents == 200

    def test_next_tier_when_best_grade_sold_out(self) -> None:
        card = _graded("Sol Ring", ("NM/M", 180, 0), ("EX/GD", 140, 2), ("SP/P", 90, 5))

        best = best_offer([card])

        assert best.offer.condition == "EX/GD"

    def test_cheapest_across_listings_in_same_tier(self) -> None:
        a = _graded("Sol Ring", ("NM/M", 200, 1))
        b = _graded("Sol Ring", ("NM/M", 150, 1), set_label="C21")

        best = best_offer([a, b])

        assert best.card is b

    def test_priced_fallback_when_nothing_in_stock(self) -> None:
        card = _graded("Sol Ring", ("SP/P", 90, 0), ("NM/M", 300, 0))

        best = best_offer([card])

        assert best.offer.condition == "NM/M"
        assert best.offer.stock == 0

    def test_no_priced_offer(self) -> None:
        assert best_offer([_graded("Sol Ring", ("NM/M", 0, 2))]) is None


class TestAvailability:
    def test_check_availability(self) -> None:
        cards = [_graded("Sol Ring", ("NM/M", 200, 1), ("EX/GD", 100, 2))]

        result = check_availability(cards, DeckCard(name="Sol Ring", quantity=3))

        assert result.total_available == 3
        assert result.is_fully_available is True
        assert result.cheapest_price_cents == 200
        assert result.cheapest_condition == "NM/M"
        assert result.average_price_cents == Decimal("150.00")

    def test_set_preference(self) -> None:
        cmm = _graded("Sol Ring", ("NM/M", 200, 1), set_label="Commander Masters")
        c21 = _graded("Sol Ring", ("NM/M", 100, 1), set_label="C21")

        result = check_availability([cmm, c21], DeckCard(name="Sol Ring", set_code="C21"), match_set=True)

        assert result.available_cards == [c21]

    def test_set_preference_falls_back_to_all(self) -> None:
        cmm = _graded("Sol Ring", ("NM/M", 200, 1), set_label="CMM")

        result = check_availability([cmm], DeckCard(name="Sol Ring", set_code="LEA"), match_set=True)

        assert result.available_cards == [cmm]

    def test_analyze_deck(self) -> None:
        cards = [
            _graded("Sol Ring", ("NM/M", 150, 2)),
            _graded("Counterspell", ("EX/GD", 90, 1)),
        ]
        deck = [
            DeckCard(name="Sol Ring", quantity=1),
            DeckCard(name="Counterspell", quantity=2),
            DeckCard(name="Black Lotus"),
        ]

        analysis = analyze_deck(cards, deck)

        assert analysis.total_cards == 3
        assert analysis.available_cards == 1
        assert analysis.missing_cards == 2
        assert analysis.total_cost_cents == 150 + 2 * 90
        missing = analysis.card_availability[2]
        assert missing.available_cards == []
        assert missing.cheapest_condition is None


class TestSearchCards:
    def test_name_or_collection(self) -> None:
        cards = [
            listing("Sol Ring", 150, 1, collection="Commander Masters"),
            listing("Llanowar Elves", 30, 1, collection="Foundations"),
        ]

        assert [c.name for c in search_cards(cards, "ring")] == ["Sol Ring"]
        assert [c.name for c in search_cards(cards, "found")] == ["Llanowar Elves"]

    def test_at_prefix_searches_collections_only(self) -> None:
        cards = [
            listing("Commander's Sphere", 40, 1, collection="Foundations"),
            listing("Sol Ring", 150, 1, collection="Commander Masters"),
        ]

        assert [c.name for c in search_cards(cards, "@commander")] == ["Sol Ring"]

    def test_empty_term_returns_everything(self) -> None:
        cards = [listing("Sol Ring", 150, 1)]

        assert search_cards(cards, "") == cards

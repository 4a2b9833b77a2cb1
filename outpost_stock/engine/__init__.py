from outpost_stock.engine.consolidate import consolidate, select_best_variant
from outpost_stock.engine.matching import analyze_deck, best_offer, find_matches, search_cards

__all__ = [
    "analyze_deck",
    "best_offer",
    "consolidate",
    "find_matches",
    "search_cards",
    "select_best_variant",
]

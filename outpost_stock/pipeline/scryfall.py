"""
Outpost Stock — Scryfall Card Metadata Client

Looks up card metadata and images for scraped listings. Scryfall asks
clients to stay under ~10 requests per second, so requests are spaced by
SCRYFALL_MIN_DELAY_MS, and responses are cached for SCRYFALL_CACHE_TTL_SECONDS.

Rate-limit and cache state live in a ScryfallState object handed to the
client, so several clients can share one budget and tests get fresh state.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field

from outpost_stock.config import settings

logger = structlog.get_logger(__name__)


# Collection name (upper case) -> Scryfall set code, most specific first
COLLECTION_SET_CODES: dict[str, str] = {
    "DUSKMOURN: HOUSE OF HORROR": "DSK",
    "BLOOMBURROW": "BLB",
    "OUTLAWS OF THUNDER JUNCTION": "OTJ",
    "MURDERS AT KARLOV MANOR": "MKM",
    "THE LOST CAVERNS OF IXALAN": "LCI",
    "WILDS OF ELDRAINE": "WOE",
    "MARCH OF THE MACHINE: THE AFTERMATH": "MAT",
    "MARCH OF THE MACHINE": "MOM",
    "PHYREXIA: ALL WILL BE ONE": "ONE",
    "DOMINARIA UNITED": "DMU",
    "STREETS OF NEW CAPENNA": "SNC",
    "COMMANDER MASTERS": "CMM",
    "COMMANDER LEGENDS: BATTLE FOR BALDUR'S GATE": "CLB",
    "COMMANDER LEGENDS": "CMR",
    "THE LORD OF THE RINGS: TALES OF MIDDLE-EARTH": "LTR",
    "MODERN HORIZONS 3": "MH3",
    "MODERN HORIZONS 2": "MH2",
    "DOUBLE MASTERS 2022": "2X2",
    "DOUBLE MASTERS": "2XM",
    "TIME SPIRAL REMASTERED": "TSR",
}

_BRACKETED_CODE_RE = re.compile(r"[\(\[]([A-Z0-9]{2,4})[\)\]]")


def extract_set_code(collection: str | None) -> str | None:
    """
    Guess a Scryfall set code from an Outpost collection name.

    Known names map directly; otherwise a code in brackets, e.g.
    "Secret Lair (SLD)", is used.
    """
    if not collection:
        return None
    upper = collection.upper().strip()
    for name, code in COLLECTION_SET_CODES.items():
        if name in upper:
            return code
    match = _BRACKETED_CODE_RE.search(upper)
    if match:
        return match.group(1)
    return None


class ScryfallCard(BaseModel):
    """The subset of a Scryfall card object used by the UI."""

    id: str
    name: str
    mana_cost: str | None = None
    cmc: float = 0
    type_line: str = ""
    oracle_text: str | None = None
    colors: list[str] = Field(default_factory=list)
    color_identity: list[str] = Field(default_factory=list)
    rarity: str = ""
    set: str = ""
    set_name: str = ""
    collector_number: str = ""
    image_uris: dict[str, str] | None = None
    card_faces: list[dict[str, Any]] = Field(default_factory=list)
    prices: dict[str, str | None] = Field(default_factory=dict)

    def image_url(self, size: str = "normal") -> str | None:
        """Image of the card, or of its front face for double-faced cards."""
        if self.image_uris:
            return self.image_uris.get(size)
        for face in self.card_faces:
            uris = face.get("image_uris") or {}
            if size in uris:
                return uris[size]
        return None


class ScryfallState:
    """
    Shared rate-limit clock and response cache.

    Pass the same instance to every client that should share one request
    budget.
    """

    def __init__(self, min_delay_ms: int | None = None, cache_ttl_seconds: int | None = None) -> None:
        if min_delay_ms is None:
            min_delay_ms = settings.SCRYFALL_MIN_DELAY_MS
        if cache_ttl_seconds is None:
            cache_ttl_seconds = settings.SCRYFALL_CACHE_TTL_SECONDS
        self.min_delay: float = min_delay_ms / 1000
        self.cache_ttl: float = cache_ttl_seconds
        self.last_request_at: float | None = None
        self.cache: dict[str, tuple[float, Any]] = {}

    def cached(self, key: str) -> Any | None:
        entry = self.cache.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if time.monotonic() - stored_at > self.cache_ttl:
            del self.cache[key]
            return None
        return value

    def store(self, key: str, value: Any) -> None:
        self.cache[key] = (time.monotonic(), value)


class ScryfallClient:
    """
    Async client for the Scryfall API.

    Usage:
        async with ScryfallClient(state) as client:
            card = await client.get_card("Sol Ring", set_code="CMM")
    """

    def __init__(
        self,
        state: ScryfallState | None = None,
        base_url: str | None = None,
    ):
        self.state = state or ScryfallState()
        self._base_url = base_url or settings.SCRYFALL_BASE_URL
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ScryfallClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Accept": "application/json", "User-Agent": "outpost-stock/0.1"},
            timeout=30.0,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def _throttle(self) -> None:
        if self.state.last_request_at is not None:
            elapsed = time.monotonic() - self.state.last_request_at
            if elapsed < self.state.min_delay:
                await asyncio.sleep(self.state.min_delay - elapsed)
        self.state.last_request_at = time.monotonic()

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any] | None:
        """GET a JSON document; None on 404 (Scryfall's "no match")."""
        assert self._client is not None, "Client not initialized. Use 'async with'."

        await self._throttle()
        response = await self._client.get(path, params=params)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def search_cards(self, name: str) -> list[ScryfallCard]:
        """
        All printings with this exact name, falling back to a fuzzy search.
        """
        key = f"search:{name.lower()}"
        cached = self.state.cached(key)
        if cached is not None:
            return cached

        data = await self._get("/cards/search", {"q": f'!"{name}"', "unique": "prints"})
        if data is None:
            logger.debug("scryfall_exact_search_empty", name=name)
            data = await self._get("/cards/search", {"q": name})

        cards = [ScryfallCard.model_validate(c) for c in (data or {}).get("data", [])]
        self.state.store(key, cards)
        logger.info("scryfall_search_complete", name=name, results_count=len(cards))
        return cards

    async def get_card(self, name: str, set_code: str | None = None) -> ScryfallCard | None:
        """
        One card by name, preferring the given set's printing.

        Falls back to Scryfall's fuzzy named lookup when no printing matches.
        """
        key = f"card:{name.lower()}:{(set_code or '').lower()}"
        cached = self.state.cached(key)
        if cached is not None:
            return cached

        card: ScryfallCard | None = None
        if set_code:
            data = await self._get(
                "/cards/search", {"q": f'!"{name}" set:{set_code.lower()}'}
            )
            results = (data or {}).get("data", [])
            if results:
                card = ScryfallCard.model_validate(results[0])

        if card is None:
            data = await self._get("/cards/named", {"fuzzy": name})
            if data is not None:
                card = ScryfallCard.model_validate(data)

        if card is None:
            logger.warning("scryfall_card_not_found", name=name, set_code=set_code)
            return None

        self.state.store(key, card)
        return card

    async def get_image_url(self, name: str, collection: str | None = None, size: str = "normal") -> str | None:
        """Image URL for a scraped listing, using its collection to pick the printing."""
        card = await self.get_card(name, extract_set_code(collection))
        return card.image_url(size) if card else None

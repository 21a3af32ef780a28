"""
KeepTradeCut dynasty rankings scraper.

Walks the paginated rankings pages, pulls one raw record per player row,
and validates them through valuations.ingest_records(). The last good
ranking is kept in memory for a few minutes; if a refresh fails and a
ranking is already cached, the stale ranking is served instead.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx
from bs4 import BeautifulSoup
from rapidfuzz import fuzz, process

from config import settings
from errors import UpstreamUnavailable
from fuzzy_match import FUZZY_THRESHOLD, normalize_name
from models import KTCRankings, PlayerValuation
from valuations import ingest_records

logger = logging.getLogger(__name__)

# KTC has used several layouts; try each selector in turn
ROW_SELECTOR = ".onePlayer, .player-row, [data-player]"
_NAME_SELECTORS = (".player-name a", ".player-name", ".name", ".playerName")
_TEAM_SELECTORS = (".player-team", ".team", ".tm")
_POSITION_SELECTORS = (".position", ".pos")
_VALUE_SELECTORS = (".value", ".ktc-value")

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


def _first_text(element, selectors) -> str:
    for selector in selectors:
        found = element.select_one(selector)
        if found is not None:
            text = found.get_text(" ", strip=True)
            if text:
                return text
    return ""


def _name_text(element) -> str:
    """Player name without the team span KTC nests inside .player-name."""
    link = element.select_one(".player-name a")
    if link is not None and link.get_text(strip=True):
        return link.get_text(strip=True)
    for selector in _NAME_SELECTORS[1:]:
        found = element.select_one(selector)
        if found is None:
            continue
        # Joined without spaces so a nested team span ends up glued ("LambDAL")
        text = found.get_text("", strip=True)
        if text:
            return text
    if element.get("data-name"):
        return element["data-name"]
    lines = [line.strip() for line in element.get_text("\n").split("\n") if line.strip()]
    return lines[0] if lines else ""


def parse_rankings_page(html: str, page_start_rank: int = 1) -> list[dict]:
    """Extract raw player dicts from one rankings page (unvalidated)."""
    soup = BeautifulSoup(html, "html.parser")
    rows = []
    for index, element in enumerate(soup.select(ROW_SELECTOR)):
        name = _name_text(element)
        if not name:
            continue
        team = _first_text(element, _TEAM_SELECTORS) or element.get("data-team", "")
        position = _first_text(element, _POSITION_SELECTORS) or element.get("data-position", "")
        value = _first_text(element, _VALUE_SELECTORS) or element.get("data-value", "")
        rows.append({
            "name": name,
            "team": team,
            "position": position,
            "value": value,
            "rank": page_start_rank + index,
        })
    return rows


class KTCScraper:
    def __init__(
        self,
        base_url: Optional[str] = None,
        ranking_format: Optional[str] = None,
        max_pages: Optional[int] = None,
        page_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.ktc_base_url
        self.ranking_format = ranking_format or settings.ktc_format
        self.max_pages = max_pages or settings.ktc_max_pages
        self.page_delay = settings.ktc_page_delay if page_delay is None else page_delay
        self._transport = transport
        self._rankings: Optional[KTCRankings] = None
        self._last_fetch: float = 0

    @property
    def last_updated(self) -> Optional[float]:
        return self._rankings.last_updated if self._rankings else None

    async def scrape(self) -> KTCRankings:
        raw_rows: list[dict] = []
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                headers=_BROWSER_HEADERS,
                follow_redirects=True,
            ) as client:
                for page in range(1, self.max_pages + 1):
                    resp = await client.get(
                        self.base_url,
                        params={"format": self.ranking_format, "page": page},
                        timeout=settings.ktc_timeout,
                    )
                    resp.raise_for_status()
                    rows = parse_rankings_page(resp.text, (page - 1) * settings.ktc_page_size + 1)
                    logger.info("KTC page %d: %d player rows", page, len(rows))
                    if not rows:
                        break
                    raw_rows.extend(rows)
                    if page < self.max_pages and self.page_delay:
                        await asyncio.sleep(self.page_delay)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Failed to fetch KTC rankings: {e}") from e

        result = ingest_records(raw_rows)
        logger.info("KTC scrape complete: %d players, %d quarantined",
                    len(result.accepted), len(result.quarantined))
        return KTCRankings(
            players=result.accepted,
            last_updated=time.time(),
            quarantined=len(result.quarantined),
        )

    async def get_rankings(self, force_refresh: bool = False) -> KTCRankings:
        fresh = time.time() - self._last_fetch < settings.ktc_cache_seconds
        if not force_refresh and self._rankings is not None and fresh:
            return self._rankings

        try:
            rankings = await self.scrape()
        except UpstreamUnavailable as e:
            if self._rankings is not None:
                logger.warning("KTC fetch failed, returning cached data: %s", e.message)
                return self._rankings
            raise

        self._rankings = rankings
        self._last_fetch = time.time()
        return rankings

    async def get_player_value(self, player_name: str, position: Optional[str] = None) -> Optional[int]:
        rankings = await self.get_rankings()
        position = position.upper() if position else None
        candidates = [p for p in rankings.players if position is None or p.position == position]

        key = normalize_name(player_name)
        for player in candidates:
            if normalize_name(player.name) == key:
                return player.value

        match = process.extractOne(
            key,
            [normalize_name(p.name) for p in candidates],
            scorer=fuzz.token_sort_ratio,
            score_cutoff=FUZZY_THRESHOLD,
        )
        if match is None:
            return None
        return candidates[match[2]].value

    async def search(self, query: str) -> list[PlayerValuation]:
        rankings = await self.get_rankings()
        q = query.lower().strip()
        return [
            p for p in rankings.players
            if q in p.name.lower() or q in p.team.lower() or q in p.position.lower()
        ]

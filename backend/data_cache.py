"""
Data cache service. Keeps the stored Sleeper player pool and dynasty
values fresh.

The service is constructed with its collaborators (storage, Sleeper client,
KTC scraper) and passed to whoever needs it; the FastAPI app keeps one on
app.state. Cache status per key lives in storage as a CacheEntry.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Optional

from config import settings
from errors import DraftAssistantError, NotFoundError
from models import Player, RefreshResult
from valuations import apply_valuations, load_values_csv

if TYPE_CHECKING:
    from ktc import KTCScraper
    from sleeper_client import SleeperClient
    from storage import MemStorage

logger = logging.getLogger(__name__)

SLEEPER_PLAYERS = "sleeper_players"
KTC_RANKINGS = "ktc_rankings"
CACHE_KEYS = (SLEEPER_PLAYERS, KTC_RANKINGS)


class DataCacheService:
    def __init__(
        self,
        storage: "MemStorage",
        sleeper: "SleeperClient",
        ktc: "KTCScraper",
        values_csv_path: Optional[str] = None,
    ):
        self.storage = storage
        self.sleeper = sleeper
        self.ktc = ktc
        self.values_csv_path = values_csv_path or settings.values_csv_path

    # -----------------------------------------------------------------
    # Staleness
    # -----------------------------------------------------------------

    def is_stale(self, cache_key: str, max_age_hours: Optional[float] = None) -> bool:
        """Missing, failed, or older than max_age_hours."""
        if max_age_hours is None:
            max_age_hours = settings.cache_max_age_hours
        entry = self.storage.get_cache_entry(cache_key)
        if entry is None or entry.status == "failed":
            return True
        age_hours = (time.time() - entry.last_updated) / 3600
        return age_hours > max_age_hours

    # -----------------------------------------------------------------
    # Refresh
    # -----------------------------------------------------------------

    async def refresh(self, cache_key: str) -> RefreshResult:
        if cache_key == SLEEPER_PLAYERS:
            return await self.refresh_sleeper_players()
        if cache_key == KTC_RANKINGS:
            return await self.refresh_ktc_data()
        raise NotFoundError(f"Unknown cache key: {cache_key}. Available: {list(CACHE_KEYS)}")

    async def refresh_sleeper_players(self) -> RefreshResult:
        logger.info("Refreshing Sleeper player data...")
        self.storage.set_cache_entry(SLEEPER_PLAYERS, "updating")
        try:
            raw_players = await self.sleeper.get_all_players()
        except DraftAssistantError as e:
            return self._failed(SLEEPER_PLAYERS, e.message)

        positions = settings.sleeper_position_list
        active = [
            p for p in raw_players.values()
            if p.player_id and p.position in positions
            and p.team and p.team != "FA"
            and p.status == "Active"
        ][:settings.max_cached_players]

        for p in active:
            self.storage.upsert_player(Player(
                id=p.player_id,
                first_name=p.first_name,
                last_name=p.last_name,
                position=p.position,
                team=p.team,
                age=p.age,
                years_exp=p.years_exp,
                height=p.height,
                weight=p.weight,
                status=p.status,
                injury_status=p.injury_status,
            ))

        self.storage.set_cache_entry(SLEEPER_PLAYERS, "active", len(active), {
            "last_refresh": time.time(),
            "source": "sleeper_api",
        })
        logger.info("Refreshed %d Sleeper players", len(active))
        return RefreshResult(success=True, count=len(active))

    async def refresh_ktc_data(self) -> RefreshResult:
        logger.info("Refreshing KTC player rankings...")
        self.storage.set_cache_entry(KTC_RANKINGS, "updating")
        try:
            rankings = await self.ktc.get_rankings(force_refresh=True)
        except DraftAssistantError as e:
            return self._failed(KTC_RANKINGS, e.message)

        matched = apply_valuations(self.storage, rankings.players)
        self.storage.set_cache_entry(KTC_RANKINGS, "active", len(rankings.players), {
            "last_refresh": time.time(),
            "source": "keeptradecut",
            "matched_players": matched,
            "quarantined": rankings.quarantined,
        })
        logger.info("Refreshed KTC rankings for %d players (%d matched)", len(rankings.players), matched)
        return RefreshResult(success=True, count=len(rankings.players))

    def apply_curated_values(self, csv_path: Optional[str] = None) -> int:
        """Apply the hand-curated values CSV to stored players."""
        result = load_values_csv(csv_path or self.values_csv_path)
        updated = apply_valuations(self.storage, result.accepted)
        logger.info("Curated values applied to %d players (%d rows quarantined)",
                    updated, len(result.quarantined))
        return updated

    def _failed(self, cache_key: str, error: str) -> RefreshResult:
        logger.error("Failed to refresh %s: %s", cache_key, error)
        self.storage.set_cache_entry(cache_key, "failed", 0, {
            "error": error,
            "failed_at": time.time(),
        })
        return RefreshResult(success=False, error=error)

    async def refresh_all(self) -> dict[str, RefreshResult]:
        """Players first so the value refresh has a pool to match against."""
        logger.info("Starting comprehensive data refresh...")
        results = {
            SLEEPER_PLAYERS: await self.refresh_sleeper_players(),
            KTC_RANKINGS: await self.refresh_ktc_data(),
        }
        logger.info("Data refresh completed: %s",
                    {k: r.success for k, r in results.items()})
        return results

    async def ensure_current(self, max_age_hours: Optional[float] = None) -> bool:
        """Refresh everything if any key is stale. True when data was already current."""
        if any(self.is_stale(key, max_age_hours) for key in CACHE_KEYS):
            logger.info("Data is stale, refreshing...")
            await self.refresh_all()
            return False
        return True

    def stats(self) -> dict:
        return {
            "caches": [entry.model_dump() for entry in self.storage.all_cache_entries()],
            "total_players": len(self.storage.players),
            "timestamp": time.time(),
        }

    async def run_refresh_loop(self, interval_seconds: float):
        """Background refresh, started from the app lifespan and cancelled on shutdown."""
        logger.info("Data cache refresh loop started (every %ss)", interval_seconds)
        while True:
            await asyncio.sleep(interval_seconds)
            await self.ensure_current()

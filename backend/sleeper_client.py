"""Sleeper API client.

Thin async wrapper over the public Sleeper v1 endpoints. Responses are
parsed into the pydantic models in models.py; transport and HTTP failures
are translated into the errors in errors.py so callers can decide whether
to degrade or propagate.

Also serves as the draft data provider for the pick resolver
(fetch_draft / fetch_completed_picks / fetch_trades).
"""
import asyncio
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from config import settings
from errors import NotFoundError, UpstreamUnavailable
from models import (
    CompletedPick,
    ConnectionCheck,
    PickOwnershipTrade,
    SleeperDraft,
    SleeperDraftPick,
    SleeperLeague,
    SleeperPlayer,
    SleeperTradedPick,
    SleeperUser,
)

logger = logging.getLogger(__name__)

TRENDING_KINDS = ("add", "drop")


class SleeperClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.sleeper_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.sleeper_timeout
        # Injected in tests (httpx.MockTransport); None means real network
        self._transport = transport

    async def _get(self, endpoint: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                headers={"User-Agent": settings.user_agent},
            ) as client:
                resp = await client.get(url, params=params, timeout=self.timeout)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise NotFoundError(f"Sleeper resource not found: {endpoint}") from e
            if status == 429:
                raise UpstreamUnavailable(
                    "Sleeper API rate limit exceeded. Please try again later."
                ) from e
            raise UpstreamUnavailable(
                f"Sleeper API error: {status} {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Network error accessing Sleeper API: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"Sleeper API returned a non-JSON body for {endpoint}") from e
        # Sleeper answers unknown ids with 200 and a literal null body
        if data is None:
            raise NotFoundError(f"Sleeper resource not found: {endpoint}")
        return data

    # -----------------------------------------------------------------
    # Endpoints
    # -----------------------------------------------------------------

    async def get_user(self, user_id: str) -> SleeperUser:
        return SleeperUser(**await self._get(f"/user/{user_id}"))

    async def get_league(self, league_id: str) -> SleeperLeague:
        return SleeperLeague(**await self._get(f"/league/{league_id}"))

    async def get_league_users(self, league_id: str) -> list[SleeperUser]:
        return [SleeperUser(**u) for u in await self._get(f"/league/{league_id}/users")]

    async def get_league_rosters(self, league_id: str) -> list[dict]:
        return await self._get(f"/league/{league_id}/rosters")

    async def get_league_drafts(self, league_id: str) -> list[SleeperDraft]:
        return [SleeperDraft(**d) for d in await self._get(f"/league/{league_id}/drafts")]

    async def get_draft(self, draft_id: str) -> SleeperDraft:
        return SleeperDraft(**await self._get(f"/draft/{draft_id}"))

    async def get_draft_picks(self, draft_id: str) -> list[SleeperDraftPick]:
        return [SleeperDraftPick(**p) for p in await self._get(f"/draft/{draft_id}/picks")]

    async def get_all_players(self, sport: str = "nfl") -> dict[str, SleeperPlayer]:
        """Full player database keyed by player_id (several MB; cache it)."""
        raw = await self._get(f"/players/{sport}")
        players = {}
        for pid, info in raw.items():
            if not isinstance(info, dict):
                continue
            info.setdefault("player_id", pid)
            players[pid] = SleeperPlayer(**info)
        return players

    async def get_traded_picks(self, league_id: str) -> list[SleeperTradedPick]:
        return [SleeperTradedPick(**t) for t in await self._get(f"/league/{league_id}/traded_picks")]

    async def get_trending_players(
        self,
        kind: str = "add",
        lookback_hours: int = 24,
        limit: int = 25,
        sport: str = "nfl",
    ) -> list[dict]:
        if kind not in TRENDING_KINDS:
            raise ValueError(f"Trending kind must be one of {TRENDING_KINDS}, got {kind!r}")
        return await self._get(
            f"/players/{sport}/trending/{kind}",
            params={"lookback_hours": lookback_hours, "limit": limit},
        )

    async def validate_connection(
        self, league_id: str, draft_id: str, user_id: str
    ) -> ConnectionCheck:
        """Check that league, draft and user exist and the draft belongs to the league."""
        league, draft, user = await asyncio.gather(
            self._or_none(self.get_league(league_id)),
            self._or_none(self.get_draft(draft_id)),
            self._or_none(self.get_user(user_id)),
        )
        if league is None:
            return ConnectionCheck(valid=False, error="Invalid league ID")
        if draft is None:
            return ConnectionCheck(valid=False, error="Invalid draft ID")
        if user is None:
            return ConnectionCheck(valid=False, error="Invalid user ID")
        if draft.league_id != league_id:
            return ConnectionCheck(valid=False, error="Draft does not belong to specified league")
        return ConnectionCheck(valid=True, league=league, draft=draft, user=user)

    @staticmethod
    async def _or_none(coro):
        try:
            return await coro
        except (NotFoundError, UpstreamUnavailable) as e:
            logger.info("Connection check lookup failed: %s", e.message)
            return None

    # -----------------------------------------------------------------
    # Draft data provider
    # -----------------------------------------------------------------

    async def fetch_draft(self, draft_id: str) -> SleeperDraft:
        try:
            return await self.get_draft(draft_id)
        except (ValidationError, TypeError) as e:
            raise UpstreamUnavailable(f"Malformed draft from Sleeper API: {e}") from e

    async def fetch_completed_picks(self, draft_id: str) -> list[CompletedPick]:
        try:
            return [
                CompletedPick(
                    pick_no=p.pick_no,
                    round=p.round,
                    roster_id=p.roster_id,
                    player_id=p.player_id,
                )
                for p in await self.get_draft_picks(draft_id)
            ]
        except (ValidationError, TypeError) as e:
            raise UpstreamUnavailable(f"Malformed draft picks from Sleeper API: {e}") from e

    async def fetch_trades(self, league_id: str) -> list[PickOwnershipTrade]:
        try:
            return [
                PickOwnershipTrade(
                    season=t.season,
                    round=t.round,
                    roster_id=t.roster_id,
                    previous_owner_id=t.previous_owner_id,
                    owner_id=t.owner_id,
                )
                for t in await self.get_traded_picks(league_id)
            ]
        except (ValidationError, TypeError) as e:
            raise UpstreamUnavailable(f"Malformed traded picks from Sleeper API: {e}") from e

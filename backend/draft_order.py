"""
Draft order service: glue between the draft data provider and the pick
resolver. Builds the payload of GET /drafts/{draft_id}/order.

The provider is any object with async fetch_draft(draft_id),
fetch_completed_picks(draft_id) and fetch_trades(league_id); in the app it
is the SleeperClient held on app.state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from config import settings
from errors import NotFoundError, UpstreamUnavailable
from models import (
    DraftConfiguration,
    DraftOrderResponse,
    DraftSettingsSummary,
    PickOwnershipTrade,
    SleeperDraft,
)
from pick_resolver import resolve_picks, summarize_current_pick

logger = logging.getLogger(__name__)


def build_configuration(
    draft: SleeperDraft,
    user_id: Optional[str] = None,
) -> tuple[DraftConfiguration, Optional[str], bool]:
    """Turn a Sleeper draft into a DraftConfiguration.

    Returns (config, requesting_roster_id, keyed_by_roster).

    Sleeper's draft_order maps user ids to slots and slot_to_roster_id maps
    slots to roster ids. Trades name roster ids, so when slot_to_roster_id
    is available the slot assignment is keyed by roster id and the user is
    found through their slot. Without it the draft_order keys stand in for
    roster ids and keyed_by_roster is False.
    """
    draft_settings = draft.settings or {}
    rounds = int(draft_settings.get("rounds") or settings.default_rounds)
    draft_order = {str(k): int(v) for k, v in (draft.draft_order or {}).items()}
    slot_to_roster = {
        int(slot): str(roster_id)
        for slot, roster_id in (draft.slot_to_roster_id or {}).items()
        if roster_id is not None
    }

    requesting: Optional[str] = None
    if slot_to_roster:
        slot_assignment = {roster_id: slot for slot, roster_id in slot_to_roster.items()}
        teams = int(draft_settings.get("teams") or len(slot_assignment))
        if user_id is not None:
            if user_id in draft_order:
                requesting = slot_to_roster.get(draft_order[user_id])
            elif user_id in slot_assignment:
                requesting = user_id
        keyed_by_roster = True
    else:
        slot_assignment = draft_order
        teams = len(draft_order) or int(draft_settings.get("teams") or settings.default_teams)
        if user_id is not None and user_id in draft_order:
            requesting = user_id
        keyed_by_roster = False

    config = DraftConfiguration(
        total_rounds=rounds,
        total_teams=teams,
        slot_assignment=slot_assignment,
        draft_type=draft.type or "snake",
        season=str(draft.season or ""),
    )
    return config, requesting, keyed_by_roster


async def fetch_trades_or_empty(provider, league_id: Optional[str]) -> list[PickOwnershipTrade]:
    """Trades degrade to an empty list; the order falls back to the original slots."""
    if not league_id:
        return []
    try:
        return await provider.fetch_trades(league_id)
    except (UpstreamUnavailable, NotFoundError) as e:
        logger.warning("Could not fetch traded picks for league %s, using original draft order: %s",
                       league_id, e.message)
        return []


async def get_draft_order(
    provider,
    draft_id: str,
    user_id: Optional[str] = None,
    limit: Optional[int] = None,
) -> DraftOrderResponse:
    """Fetch draft state and trades, then resolve the user's upcoming picks.

    Draft and pick fetch failures propagate; ConfigurationError from the
    resolver propagates too.
    """
    limit = limit or settings.upcoming_picks_limit
    draft, completed = await asyncio.gather(
        provider.fetch_draft(draft_id),
        provider.fetch_completed_picks(draft_id),
    )
    trades = await fetch_trades_or_empty(provider, draft.league_id)
    config, requesting, keyed_by_roster = build_configuration(draft, user_id)

    summary_settings = DraftSettingsSummary(
        rounds=config.total_rounds,
        teams=config.total_teams,
        type=config.draft_type,
    )

    if not config.slot_assignment:
        # Order not set yet (pre-draft): summary only
        return DraftOrderResponse(
            current_pick=summarize_current_pick(config.total_rounds, config.total_teams, completed),
            traded_picks_count=len(trades),
            settings=summary_settings,
        )

    applicable = trades
    if not keyed_by_roster and trades:
        logger.warning("Draft %s has no slot_to_roster_id; %d traded picks cannot be matched to slots",
                       draft_id, len(trades))
        applicable = []

    resolution = resolve_picks(
        config,
        completed,
        applicable,
        requesting_roster_id=requesting,
        limit=limit,
    )
    return DraftOrderResponse(
        current_pick=resolution.current_pick,
        user_picks=resolution.owned_picks,
        draft_order=dict(config.slot_assignment),
        traded_picks_count=len(trades),
        settings=summary_settings,
    )

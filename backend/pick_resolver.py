"""
Snake-draft pick-ownership resolver.

Given a draft's configuration, the picks already made, and the league's
pick trades, works out the current overall pick, who owns every remaining
pick, and which of those belong to a requesting roster.

Everything here is a pure function of its arguments: no I/O and no shared
state, so concurrent requests can call it freely.
"""

from typing import Iterable, Optional

from errors import ConfigurationError
from models import (
    CompletedPick,
    CurrentPick,
    DraftConfiguration,
    PickOwner,
    PickOwnershipTrade,
    PickResolution,
    ResolvedPick,
)

UPCOMING_PICKS_LIMIT = 5


# -----------------------------------------------------------------
# Pick arithmetic
# -----------------------------------------------------------------

def absolute_pick(round_no: int, pick_in_round: int, total_teams: int) -> int:
    return (round_no - 1) * total_teams + pick_in_round


def locate_pick(pick_number: int, total_teams: int) -> tuple[int, int]:
    """Overall pick number -> (round, pick_in_round), both 1-based."""
    round_no = (pick_number + total_teams - 1) // total_teams
    pick_in_round = ((pick_number - 1) % total_teams) + 1
    return round_no, pick_in_round


def snake_slot(round_no: int, pick_in_round: int, total_teams: int) -> int:
    """Original slot on the clock at (round, pick_in_round).

    Odd rounds run slot 1 -> N, even rounds run N -> 1.
    """
    if round_no % 2 == 1:
        return pick_in_round
    return total_teams - pick_in_round + 1


def current_pick_number(completed: Iterable[CompletedPick]) -> int:
    """Count of picks with a player assigned, plus one.

    Order of `completed` does not matter and gaps are not scanned for.
    """
    return sum(1 for pick in completed if pick.is_made) + 1


def summarize_current_pick(
    total_rounds: int,
    total_teams: int,
    completed: Iterable[CompletedPick],
) -> CurrentPick:
    current = current_pick_number(completed)
    round_no, pick_in_round = locate_pick(current, total_teams)
    return CurrentPick(
        round=round_no,
        pick_in_round=pick_in_round,
        absolute_pick=current,
        total_picks=total_rounds * total_teams,
    )


# -----------------------------------------------------------------
# Validation
# -----------------------------------------------------------------

def validate_configuration(
    config: DraftConfiguration,
    trades: Iterable[PickOwnershipTrade] = (),
):
    """Raise ConfigurationError unless the slot assignment is a bijection
    onto [1, total_teams] and every same-season trade names known rosters."""
    if config.total_rounds <= 0 or config.total_teams <= 0:
        raise ConfigurationError(
            f"Draft needs positive rounds and teams (got {config.total_rounds} rounds, "
            f"{config.total_teams} teams)"
        )

    slots = sorted(config.slot_assignment.values())
    expected = list(range(1, config.total_teams + 1))
    if slots != expected:
        duplicates = sorted({s for s in slots if slots.count(s) > 1})
        missing = [s for s in expected if s not in slots]
        raise ConfigurationError(
            f"Slot assignment must cover slots 1-{config.total_teams} exactly once "
            f"(duplicates: {duplicates or 'none'}, missing: {missing or 'none'}, "
            f"{len(slots)} rosters)"
        )

    for trade in trades:
        if trade.season != config.season:
            continue
        if not 1 <= trade.round <= config.total_rounds:
            raise ConfigurationError(
                f"Traded pick for round {trade.round} is outside a {config.total_rounds}-round draft"
            )
        for roster_id in (trade.previous_owner_id, trade.owner_id):
            if roster_id not in config.slot_assignment:
                raise ConfigurationError(
                    f"Traded round-{trade.round} pick references roster {roster_id}, "
                    f"which has no draft slot"
                )


# -----------------------------------------------------------------
# Ownership
# -----------------------------------------------------------------

def _roster_by_slot(config: DraftConfiguration) -> dict[int, str]:
    return {slot: roster_id for roster_id, slot in config.slot_assignment.items()}


def find_trade(
    trades: Iterable[PickOwnershipTrade],
    season: str,
    round_no: int,
    original_owner: str,
) -> Optional[PickOwnershipTrade]:
    """First trade of the original owner's pick in this round, if any.

    Only one hop is followed: a pick re-traded later is still matched on its
    original owner.
    """
    for trade in trades:
        if (
            trade.season == season
            and trade.round == round_no
            and trade.previous_owner_id == original_owner
        ):
            return trade
    return None


def pick_owners(
    config: DraftConfiguration,
    trades: Iterable[PickOwnershipTrade] = (),
    start: int = 1,
) -> list[PickOwner]:
    """Ownership of every pick from `start` through the last pick."""
    trades = list(trades)
    validate_configuration(config, trades)
    return _ownership_board(config, trades, start)


def _ownership_board(
    config: DraftConfiguration,
    trades: list[PickOwnershipTrade],
    start: int,
) -> list[PickOwner]:
    # Inputs must already have passed validate_configuration
    teams = config.total_teams
    roster_by_slot = _roster_by_slot(config)
    start = max(1, start)
    first_round, _ = locate_pick(start, teams)

    board: list[PickOwner] = []
    for round_no in range(first_round, config.total_rounds + 1):
        for pick_in_round in range(1, teams + 1):
            overall = absolute_pick(round_no, pick_in_round, teams)
            if overall < start:
                continue
            slot = snake_slot(round_no, pick_in_round, teams)
            original = roster_by_slot[slot]
            trade = find_trade(trades, config.season, round_no, original)
            board.append(PickOwner(
                round=round_no,
                pick_in_round=pick_in_round,
                absolute_pick=overall,
                slot=slot,
                original_owner=original,
                owner=trade.owner_id if trade else original,
                is_traded=trade is not None,
            ))
    return board


def resolve_picks(
    config: DraftConfiguration,
    completed: Iterable[CompletedPick],
    trades: Iterable[PickOwnershipTrade] = (),
    requesting_roster_id: Optional[str] = None,
    limit: int = UPCOMING_PICKS_LIMIT,
) -> PickResolution:
    """Current-pick summary plus the requesting roster's next `limit` picks.

    Once every pick is made the result is the draft-complete state: the
    current pick points one past the last real pick and no picks are owned.
    """
    trades = list(trades)
    validate_configuration(config, trades)

    summary = summarize_current_pick(config.total_rounds, config.total_teams, completed)
    current = summary.absolute_pick

    resolution = PickResolution(
        current_pick=summary,
        traded_picks_count=len(trades),
        is_complete=current > summary.total_picks,
    )
    if resolution.is_complete or requesting_roster_id is None:
        return resolution

    requesting = str(requesting_roster_id)
    owned = [
        ResolvedPick(
            round=cell.round,
            pick_in_round=cell.pick_in_round,
            absolute_pick=cell.absolute_pick,
            is_next=cell.absolute_pick == current,
            picks_away=cell.absolute_pick - current,
            is_traded=cell.is_traded,
        )
        for cell in _ownership_board(config, trades, current)
        if cell.owner == requesting
    ]
    owned.sort(key=lambda p: p.absolute_pick)
    resolution.owned_picks = owned[:limit]
    return resolution

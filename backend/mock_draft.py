"""
Mock draft practice mode.

A mock draft is a snake draft with no trades. Recording a pick works out
who is on the clock from the snake order, stores the pick, and advances
the draft; the same resolver that serves live drafts reports the user's
upcoming picks.
"""

from typing import Optional

from errors import ConfigurationError, NotFoundError
from models import (
    CompletedPick,
    DraftConfiguration,
    DraftOrderResponse,
    DraftSettingsSummary,
    MockDraft,
    MockDraftCreate,
    MockDraftPick,
    MockPickCreate,
    PickOwner,
)
from pick_resolver import UPCOMING_PICKS_LIMIT, pick_owners, resolve_picks, validate_configuration
from storage import MemStorage

MOCK_SEASON = "mock"


def configuration_for(mock) -> DraftConfiguration:
    return DraftConfiguration(
        total_rounds=mock.total_rounds,
        total_teams=mock.total_teams,
        slot_assignment=mock.draft_order,
        draft_type="snake",
        season=MOCK_SEASON,
    )


def prepare_mock_draft(data: MockDraftCreate) -> MockDraftCreate:
    """Validate a new mock draft, filling in a default order (team ids "1".."N")."""
    if data.total_rounds <= 0 or data.total_teams <= 0:
        raise ConfigurationError("Mock draft needs at least one round and one team")
    if not data.draft_order:
        data = data.model_copy(update={
            "draft_order": {str(slot): slot for slot in range(1, data.total_teams + 1)},
        })
    validate_configuration(configuration_for(data))
    if data.user_team_id is not None and data.user_team_id not in data.draft_order:
        raise ConfigurationError(f"User team {data.user_team_id} is not in the draft order")
    return data


def on_the_clock(mock: MockDraft) -> Optional[PickOwner]:
    """The pick about to be made, or None once the draft is over."""
    if mock.current_pick > mock.total_rounds * mock.total_teams:
        return None
    board = pick_owners(configuration_for(mock), start=mock.current_pick)
    return board[0] if board else None


def record_pick(storage: MemStorage, mock_id: str, data: MockPickCreate) -> MockDraftPick:
    mock = storage.get_mock_draft(mock_id)
    if mock is None:
        raise NotFoundError("Mock draft not found")
    if mock.is_completed:
        raise ConfigurationError("Mock draft is already complete")
    if data.player_id and any(
        p.player_id == data.player_id for p in storage.get_mock_draft_picks(mock_id)
    ):
        raise ConfigurationError(f"Player {data.player_id} was already drafted in this mock")

    cell = on_the_clock(mock)
    if cell is None:
        storage.update_mock_draft(mock_id, is_completed=True)
        raise ConfigurationError("Mock draft is already complete")

    pick = storage.add_mock_draft_pick(MockDraftPick(
        mock_draft_id=mock_id,
        round=cell.round,
        pick=cell.absolute_pick,
        round_pick=cell.pick_in_round,
        team_id=cell.owner,
        player_id=data.player_id,
        player_name=data.player_name,
        player_position=data.player_position,
        player_team=data.player_team,
        is_user_pick=mock.user_team_id is not None and cell.owner == mock.user_team_id,
    ))

    next_pick = cell.absolute_pick + 1
    storage.update_mock_draft(
        mock_id,
        current_pick=next_pick,
        is_completed=next_pick > mock.total_rounds * mock.total_teams,
    )
    return pick


def mock_draft_order(storage: MemStorage, mock_id: str, limit: int = UPCOMING_PICKS_LIMIT) -> DraftOrderResponse:
    """Current pick and the user's next picks, in the live-draft response shape."""
    mock = storage.get_mock_draft(mock_id)
    if mock is None:
        raise NotFoundError("Mock draft not found")

    completed = [
        CompletedPick(pick_no=p.pick, round=p.round, roster_id=p.team_id, player_id=p.player_id or f"mock-{p.id}")
        for p in storage.get_mock_draft_picks(mock_id)
    ]
    resolution = resolve_picks(
        configuration_for(mock),
        completed,
        requesting_roster_id=mock.user_team_id,
        limit=limit,
    )
    return DraftOrderResponse(
        current_pick=resolution.current_pick,
        user_picks=resolution.owned_picks,
        draft_order=dict(mock.draft_order),
        settings=DraftSettingsSummary(rounds=mock.total_rounds, teams=mock.total_teams, type="snake"),
    )


def slot_history(storage: MemStorage, round_no: int, round_pick: int) -> dict:
    """Players taken at one draft slot across every mock draft, with position counts."""
    picks = sorted(storage.picks_by_slot(round_no, round_pick), key=lambda p: p.picked_at, reverse=True)
    positions: dict[str, int] = {}
    for p in picks:
        if p.player_position:
            positions[p.player_position] = positions.get(p.player_position, 0) + 1
    return {
        "round": round_no,
        "pick": round_pick,
        "total": len(picks),
        "positions": positions,
        "picks": [p.model_dump() for p in picks],
    }

"""
Tests for mock_draft.py: setup validation, snake-order pick recording,
completion, the user's upcoming picks, and per-slot history.
"""

import pytest

from errors import ConfigurationError, NotFoundError
from mock_draft import (
    mock_draft_order,
    on_the_clock,
    prepare_mock_draft,
    record_pick,
    slot_history,
)
from models import MockDraftCreate, MockPickCreate


def create(storage, **overrides):
    data = {"user_id": "u1", "name": "Practice", "total_rounds": 3, "total_teams": 3, "user_team_id": "1"}
    data.update(overrides)
    return storage.create_mock_draft(prepare_mock_draft(MockDraftCreate(**data)))


def pick(storage, mock_id, player_id, position="WR"):
    return record_pick(storage, mock_id, MockPickCreate(
        player_id=player_id, player_name=f"Player {player_id}", player_position=position,
    ))


class TestPrepareMockDraft:
    def test_default_order(self):
        data = prepare_mock_draft(MockDraftCreate(user_id="u1", name="x", total_rounds=2, total_teams=4))
        assert data.draft_order == {"1": 1, "2": 2, "3": 3, "4": 4}

    def test_integer_team_keys(self):
        data = prepare_mock_draft(MockDraftCreate(
            user_id="u1", name="x", total_rounds=2, total_teams=2, draft_order={7: 2, 9: 1}, user_team_id="9",
        ))
        assert data.draft_order == {"7": 2, "9": 1}

    def test_integer_user_team_id(self):
        data = prepare_mock_draft(MockDraftCreate(
            user_id="u1", name="x", total_rounds=2, total_teams=2, draft_order={7: 2, 9: 1}, user_team_id=9,
        ))
        assert data.user_team_id == "9"

    def test_bad_order_rejected(self):
        with pytest.raises(ConfigurationError):
            prepare_mock_draft(MockDraftCreate(
                user_id="u1", name="x", total_rounds=2, total_teams=3, draft_order={"a": 1, "b": 1, "c": 3},
            ))

    def test_user_team_must_be_in_order(self):
        with pytest.raises(ConfigurationError, match="not in the draft order"):
            prepare_mock_draft(MockDraftCreate(user_id="u1", name="x", total_teams=2, user_team_id="5"))

    def test_zero_rounds_rejected(self):
        with pytest.raises(ConfigurationError):
            prepare_mock_draft(MockDraftCreate(user_id="u1", name="x", total_rounds=0))


class TestRecordPick:
    def test_picks_follow_snake_order(self, storage):
        mock = create(storage)
        teams = [pick(storage, mock.id, f"p{n}").team_id for n in range(1, 7)]
        assert teams == ["1", "2", "3", "3", "2", "1"]

    def test_pick_fields(self, storage):
        mock = create(storage)
        for n in range(1, 4):
            pick(storage, mock.id, f"p{n}")
        fourth = pick(storage, mock.id, "p4")
        assert (fourth.round, fourth.pick, fourth.round_pick, fourth.team_id) == (2, 4, 1, "3")
        assert not fourth.is_user_pick
        assert storage.get_mock_draft(mock.id).current_pick == 5

    def test_user_pick_flagged(self, storage):
        mock = create(storage)
        assert pick(storage, mock.id, "p1").is_user_pick

    def test_duplicate_player_rejected(self, storage):
        mock = create(storage)
        pick(storage, mock.id, "p1")
        with pytest.raises(ConfigurationError, match="already drafted"):
            pick(storage, mock.id, "p1")

    def test_completes_after_last_pick(self, storage):
        mock = create(storage, total_rounds=1, total_teams=2, user_team_id=None)
        pick(storage, mock.id, "p1")
        pick(storage, mock.id, "p2")
        assert storage.get_mock_draft(mock.id).is_completed
        assert on_the_clock(storage.get_mock_draft(mock.id)) is None
        with pytest.raises(ConfigurationError, match="already complete"):
            pick(storage, mock.id, "p3")

    def test_unknown_mock(self, storage):
        with pytest.raises(NotFoundError):
            pick(storage, "missing", "p1")


class TestMockDraftOrder:
    def test_upcoming_user_picks(self, storage):
        mock = create(storage)
        response = mock_draft_order(storage, mock.id)
        assert [p.absolute_pick for p in response.user_picks] == [1, 6, 7]
        assert response.user_picks[0].is_next
        assert response.settings.teams == 3

    def test_order_advances_with_picks(self, storage):
        mock = create(storage)
        pick(storage, mock.id, "p1")
        pick(storage, mock.id, "p2")
        response = mock_draft_order(storage, mock.id, limit=1)
        assert response.current_pick.absolute_pick == 3
        assert [p.absolute_pick for p in response.user_picks] == [6]
        assert response.user_picks[0].picks_away == 3

    def test_picks_without_player_id_still_count(self, storage):
        mock = create(storage)
        record_pick(storage, mock.id, MockPickCreate(player_name="Someone"))
        assert mock_draft_order(storage, mock.id).current_pick.absolute_pick == 2

    def test_unknown_mock(self, storage):
        with pytest.raises(NotFoundError):
            mock_draft_order(storage, "missing")


class TestSlotHistory:
    def test_positions_counted_across_drafts(self, storage):
        for position in ("RB", "RB", "WR"):
            mock = create(storage)
            pick(storage, mock.id, "p1", position=position)
        history = slot_history(storage, 1, 1)
        assert history["total"] == 3
        assert history["positions"] == {"RB": 2, "WR": 1}
        assert len(history["picks"]) == 3

    def test_empty_slot(self, storage):
        assert slot_history(storage, 9, 9)["total"] == 0

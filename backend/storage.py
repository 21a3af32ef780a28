"""
In-memory storage for leagues, drafts, players, draft picks, mock drafts,
watchlists, sessions and data-cache status.

Platform data (leagues, drafts, players, picks) is a cache of Sleeper and
is simply re-fetched after a restart. User data (mock drafts and their
picks, watchlist items, sessions) is also written to an EventStore and
rebuilt from it by replay() on startup.
"""

import logging
import time
import uuid
from typing import Optional

from event_store import EventStore
from models import (
    CacheEntry,
    DraftPickRecord,
    DraftRecord,
    LeagueRecord,
    MockDraft,
    MockDraftCreate,
    MockDraftPick,
    Player,
    Session,
    WatchlistItem,
)

logger = logging.getLogger(__name__)


class MemStorage:
    def __init__(self, event_store: Optional[EventStore] = None):
        self.event_store = event_store or EventStore()

        self.leagues: dict[str, LeagueRecord] = {}
        self.drafts: dict[str, DraftRecord] = {}
        self.players: dict[str, Player] = {}
        self.draft_picks: dict[int, DraftPickRecord] = {}
        self.mock_drafts: dict[str, MockDraft] = {}
        self.mock_draft_picks: dict[int, MockDraftPick] = {}
        self.watchlist: dict[int, WatchlistItem] = {}
        self.sessions: dict[int, Session] = {}
        self.cache_entries: dict[str, CacheEntry] = {}

        self._draft_pick_id = 1
        self._mock_pick_id = 1
        self._watchlist_id = 1
        self._session_id = 1

    def _log(self, event_type: str, payload: dict):
        self.event_store.append(event_type, payload)

    # -----------------------------------------------------------------
    # Replay (startup recovery, no event store writes)
    # -----------------------------------------------------------------

    def replay(self, events: list[dict]) -> int:
        """Rebuild user records from logged events. Returns events applied."""
        applied = 0
        for event in events:
            event_type = event.get("type")
            payload = event.get("payload") or {}
            try:
                if event_type in ("mock_draft.created", "mock_draft.updated"):
                    draft = MockDraft(**payload)
                    self.mock_drafts[draft.id] = draft
                elif event_type == "mock_draft.deleted":
                    self._drop_mock_draft(payload["id"])
                elif event_type == "mock_pick.added":
                    pick = MockDraftPick(**payload)
                    self.mock_draft_picks[pick.id] = pick
                    self._mock_pick_id = max(self._mock_pick_id, pick.id + 1)
                elif event_type == "watchlist.added":
                    item = WatchlistItem(**payload)
                    self.watchlist[item.id] = item
                    self._watchlist_id = max(self._watchlist_id, item.id + 1)
                elif event_type == "watchlist.removed":
                    self.watchlist.pop(payload["id"], None)
                elif event_type == "session.saved":
                    session = Session(**payload)
                    self.sessions[session.id] = session
                    self._session_id = max(self._session_id, session.id + 1)
                elif event_type == "session.deleted":
                    self.sessions.pop(payload["id"], None)
                else:
                    continue
            except (KeyError, ValueError) as e:
                logger.warning("Skip replay event #%s (%s): %s", event.get("seq"), event_type, e)
                continue
            applied += 1
        return applied

    # -----------------------------------------------------------------
    # Leagues & drafts
    # -----------------------------------------------------------------

    def get_league(self, league_id: str) -> Optional[LeagueRecord]:
        return self.leagues.get(league_id)

    def upsert_league(self, league: LeagueRecord) -> LeagueRecord:
        existing = self.leagues.get(league.id)
        if existing:
            league = league.model_copy(update={"created_at": existing.created_at})
        self.leagues[league.id] = league
        return league

    def get_draft(self, draft_id: str) -> Optional[DraftRecord]:
        return self.drafts.get(draft_id)

    def get_drafts_by_league(self, league_id: str) -> list[DraftRecord]:
        return [d for d in self.drafts.values() if d.league_id == league_id]

    def upsert_draft(self, draft: DraftRecord) -> DraftRecord:
        existing = self.drafts.get(draft.id)
        if existing:
            draft = draft.model_copy(update={"created_at": existing.created_at})
        self.drafts[draft.id] = draft
        return draft

    # -----------------------------------------------------------------
    # Players
    # -----------------------------------------------------------------

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    def all_players(self) -> list[Player]:
        return list(self.players.values())

    def upsert_player(self, player: Player) -> Player:
        """Insert or replace platform fields, keeping any stored dynasty values."""
        existing = self.players.get(player.id)
        if existing:
            keep = {
                field: getattr(existing, field)
                for field in ("ktc_value", "ktc_rank", "position_rank")
                if getattr(player, field) is None
            }
            player = player.model_copy(update={**keep, "updated_at": time.time()})
        self.players[player.id] = player
        return player

    def update_player(self, player_id: str, **updates) -> Optional[Player]:
        existing = self.players.get(player_id)
        if existing is None:
            return None
        updated = existing.model_copy(update={**updates, "updated_at": time.time()})
        self.players[player_id] = updated
        return updated

    def search_players(self, query: str) -> list[Player]:
        q = query.lower()
        return [
            p for p in self.players.values()
            if any(q in (field or "").lower() for field in (p.first_name, p.last_name, p.team, p.position))
        ]

    def players_with_values(self, positions: Optional[list[str]] = None) -> list[Player]:
        """Named players with a positive dynasty value, highest first."""
        players = [
            p for p in self.players.values()
            if p.ktc_value and p.ktc_value > 0 and p.first_name and p.last_name
            and (positions is None or p.position in positions)
        ]
        players.sort(key=lambda p: p.ktc_value or 0, reverse=True)
        return players

    def clear_players(self):
        self.players.clear()

    # -----------------------------------------------------------------
    # Draft picks (live draft cache)
    # -----------------------------------------------------------------

    def add_draft_pick(self, pick: DraftPickRecord) -> DraftPickRecord:
        """Store a pick; a second copy of the same (draft, pick_no) replaces the first."""
        for pick_id, existing in self.draft_picks.items():
            if existing.draft_id == pick.draft_id and existing.pick_no == pick.pick_no:
                pick = pick.model_copy(update={"id": pick_id})
                break
        else:
            pick = pick.model_copy(update={"id": self._draft_pick_id})
            self._draft_pick_id += 1
        if pick.player_id and pick.picked_at is None:
            pick = pick.model_copy(update={"picked_at": time.time()})
        self.draft_picks[pick.id] = pick
        return pick

    def get_draft_picks(self, draft_id: str) -> list[DraftPickRecord]:
        picks = [p for p in self.draft_picks.values() if p.draft_id == draft_id]
        return sorted(picks, key=lambda p: p.pick_no)

    # -----------------------------------------------------------------
    # Mock drafts
    # -----------------------------------------------------------------

    def get_mock_draft(self, mock_id: str) -> Optional[MockDraft]:
        return self.mock_drafts.get(mock_id)

    def mock_drafts_for_user(self, user_id: str) -> list[MockDraft]:
        drafts = [d for d in self.mock_drafts.values() if d.user_id == user_id]
        return sorted(drafts, key=lambda d: d.created_at, reverse=True)

    def create_mock_draft(self, data: MockDraftCreate) -> MockDraft:
        mock = MockDraft(id=uuid.uuid4().hex, **data.model_dump())
        self.mock_drafts[mock.id] = mock
        self._log("mock_draft.created", mock.model_dump())
        return mock

    def update_mock_draft(self, mock_id: str, **updates) -> Optional[MockDraft]:
        existing = self.mock_drafts.get(mock_id)
        if existing is None:
            return None
        updated = existing.model_copy(update={**updates, "updated_at": time.time()})
        self.mock_drafts[mock_id] = updated
        self._log("mock_draft.updated", updated.model_dump())
        return updated

    def delete_mock_draft(self, mock_id: str) -> bool:
        if mock_id not in self.mock_drafts:
            return False
        self._drop_mock_draft(mock_id)
        self._log("mock_draft.deleted", {"id": mock_id})
        return True

    def _drop_mock_draft(self, mock_id: str):
        self.mock_drafts.pop(mock_id, None)
        for pick_id in [k for k, p in self.mock_draft_picks.items() if p.mock_draft_id == mock_id]:
            del self.mock_draft_picks[pick_id]

    def add_mock_draft_pick(self, pick: MockDraftPick) -> MockDraftPick:
        pick = pick.model_copy(update={"id": self._mock_pick_id})
        self._mock_pick_id += 1
        self.mock_draft_picks[pick.id] = pick
        self._log("mock_pick.added", pick.model_dump())
        return pick

    def get_mock_draft_picks(self, mock_id: str) -> list[MockDraftPick]:
        picks = [p for p in self.mock_draft_picks.values() if p.mock_draft_id == mock_id]
        return sorted(picks, key=lambda p: p.pick)

    def picks_by_slot(self, round_no: int, round_pick: int) -> list[MockDraftPick]:
        """Every mock pick made at this (round, pick-in-round) across all mock drafts."""
        return [
            p for p in self.mock_draft_picks.values()
            if p.round == round_no and p.round_pick == round_pick
        ]

    # -----------------------------------------------------------------
    # Watchlist
    # -----------------------------------------------------------------

    def get_watchlist(self, user_id: str) -> list[WatchlistItem]:
        return [w for w in self.watchlist.values() if w.user_id == user_id]

    def add_to_watchlist(self, user_id: str, player_id: str, notes: Optional[str] = None) -> WatchlistItem:
        item = WatchlistItem(id=self._watchlist_id, user_id=user_id, player_id=player_id, notes=notes)
        self._watchlist_id += 1
        self.watchlist[item.id] = item
        self._log("watchlist.added", item.model_dump())
        return item

    def remove_from_watchlist(self, item_id: int) -> bool:
        if self.watchlist.pop(item_id, None) is None:
            return False
        self._log("watchlist.removed", {"id": item_id})
        return True

    # -----------------------------------------------------------------
    # Sessions
    # -----------------------------------------------------------------

    def get_sessions(self) -> list[Session]:
        return sorted(self.sessions.values(), key=lambda s: s.last_used, reverse=True)

    def create_session(self, league_id: str, draft_id: str, user_id: str, league_name: str) -> Session:
        """Save a league/draft/user connection, reusing an existing one."""
        for session in self.sessions.values():
            if (session.league_id, session.draft_id, session.user_id) == (league_id, draft_id, user_id):
                session = session.model_copy(update={"last_used": time.time(), "league_name": league_name})
                break
        else:
            session = Session(
                id=self._session_id,
                league_id=league_id,
                draft_id=draft_id,
                user_id=user_id,
                league_name=league_name,
            )
            self._session_id += 1
        self.sessions[session.id] = session
        self._log("session.saved", session.model_dump())
        return session

    def delete_session(self, session_id: int) -> bool:
        if self.sessions.pop(session_id, None) is None:
            return False
        self._log("session.deleted", {"id": session_id})
        return True

    # -----------------------------------------------------------------
    # Data cache status
    # -----------------------------------------------------------------

    def get_cache_entry(self, cache_key: str) -> Optional[CacheEntry]:
        return self.cache_entries.get(cache_key)

    def set_cache_entry(
        self,
        cache_key: str,
        status: str,
        data_count: Optional[int] = None,
        metadata: Optional[dict] = None,
    ) -> CacheEntry:
        existing = self.cache_entries.get(cache_key)
        entry = CacheEntry(
            cache_key=cache_key,
            status=status,
            last_updated=time.time(),
            data_count=data_count if data_count is not None else (existing.data_count if existing else 0),
            metadata=metadata if metadata is not None else (existing.metadata if existing else {}),
        )
        self.cache_entries[cache_key] = entry
        return entry

    def all_cache_entries(self) -> list[CacheEntry]:
        return list(self.cache_entries.values())

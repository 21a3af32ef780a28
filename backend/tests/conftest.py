"""
Shared pytest fixtures for the Dynasty Draft Assistant backend test suite.
"""

import sys
from pathlib import Path

import pytest

# Ensure the backend directory is on sys.path so we can import modules directly
BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))


# =====================================================================
# Override settings to stable test defaults
# =====================================================================

@pytest.fixture(autouse=True)
def _test_settings(tmp_path):
    """Override settings to ensure consistent test defaults regardless of .env."""
    from config import settings

    original_values = {
        "ktc_format": settings.ktc_format,
        "ktc_page_delay": settings.ktc_page_delay,
        "ktc_cache_seconds": settings.ktc_cache_seconds,
        "values_csv_path": settings.values_csv_path,
        "store_path": settings.store_path,
        "cache_max_age_hours": settings.cache_max_age_hours,
        "refresh_interval_minutes": settings.refresh_interval_minutes,
        "max_cached_players": settings.max_cached_players,
        "default_rounds": settings.default_rounds,
        "default_teams": settings.default_teams,
        "upcoming_picks_limit": settings.upcoming_picks_limit,
        "dynasty_positions": settings.dynasty_positions,
        "sleeper_positions": settings.sleeper_positions,
    }

    # Set stable test defaults
    settings.ktc_format = "superflex"
    settings.ktc_page_delay = 0
    settings.ktc_cache_seconds = 300
    settings.values_csv_path = str(BACKEND_DIR / "data" / "dynasty_values.csv")
    settings.store_path = str(tmp_path / "store.jsonl")
    settings.cache_max_age_hours = 24
    settings.refresh_interval_minutes = 0
    settings.max_cached_players = 1000
    settings.default_rounds = 15
    settings.default_teams = 12
    settings.upcoming_picks_limit = 5
    settings.dynasty_positions = "QB,RB,WR,TE"
    settings.sleeper_positions = "QB,RB,WR,TE,K,DEF"

    yield settings

    # Restore originals
    for key, val in original_values.items():
        setattr(settings, key, val)


# =====================================================================
# Draft configurations
# =====================================================================

@pytest.fixture
def twelve_team_config():
    """15-round, 12-team snake draft; roster "r{n}" holds slot n."""
    from models import DraftConfiguration
    return DraftConfiguration(
        total_rounds=15,
        total_teams=12,
        slot_assignment={f"r{slot}": slot for slot in range(1, 13)},
        season="2025",
    )


def make_completed(count: int, total_teams: int = 12):
    """`count` made picks, numbered 1..count."""
    from models import CompletedPick
    return [
        CompletedPick(
            pick_no=n,
            round=(n - 1) // total_teams + 1,
            roster_id="r1",
            player_id=f"p{n}",
        )
        for n in range(1, count + 1)
    ]


# =====================================================================
# Sleeper payloads
# =====================================================================

SLEEPER_DRAFT = {
    "draft_id": "d1",
    "league_id": "L1",
    "type": "snake",
    "status": "drafting",
    "sport": "nfl",
    "season": "2025",
    "settings": {"rounds": 4, "teams": 4},
    "draft_order": {"u1": 1, "u2": 2, "u3": 3, "u4": 4},
    "slot_to_roster_id": {"1": 3, "2": 1, "3": 4, "4": 2},
}

SLEEPER_LEAGUE = {
    "league_id": "L1",
    "name": "Dynasty Degenerates",
    "sport": "nfl",
    "season": "2025",
    "status": "drafting",
    "total_rosters": 4,
    "settings": {},
}

SLEEPER_USER = {"user_id": "u1", "username": "gm_one", "display_name": "GM One"}

SLEEPER_PLAYERS = {
    "4984": {"player_id": "4984", "first_name": "Josh", "last_name": "Allen", "position": "QB",
             "team": "BUF", "age": 28, "status": "Active"},
    "7564": {"player_id": "7564", "first_name": "Ja'Marr", "last_name": "Chase", "position": "WR",
             "team": "CIN", "age": 24, "status": "Active"},
    "9509": {"player_id": "9509", "first_name": "Bijan", "last_name": "Robinson", "position": "RB",
             "team": "ATL", "age": 22, "status": "Active"},
    "1111": {"player_id": "1111", "first_name": "Free", "last_name": "Agent", "position": "WR",
             "team": "FA", "status": "Active"},
    "2222": {"player_id": "2222", "first_name": "Old", "last_name": "Timer", "position": "RB",
             "team": "NYJ", "status": "Inactive"},
    "3333": {"player_id": "3333", "first_name": "Punt", "last_name": "Guy", "position": "P",
             "team": "DAL", "status": "Active"},
}


class FakeDraftProvider:
    """In-memory stand-in for the Sleeper client's draft provider methods."""

    def __init__(self, draft=None, picks=(), trades=(), trade_error=None):
        from models import SleeperDraft
        self.draft = SleeperDraft(**(draft or SLEEPER_DRAFT))
        self.picks = list(picks)
        self.trades = list(trades)
        self.trade_error = trade_error
        self.trade_calls = 0

    async def fetch_draft(self, draft_id):
        return self.draft

    async def fetch_completed_picks(self, draft_id):
        return self.picks

    async def fetch_trades(self, league_id):
        self.trade_calls += 1
        if self.trade_error is not None:
            raise self.trade_error
        return self.trades


@pytest.fixture
def fake_provider():
    return FakeDraftProvider()


# =====================================================================
# Storage
# =====================================================================

@pytest.fixture
def event_store(tmp_path):
    from event_store import EventStore
    store = EventStore()
    store.open(str(tmp_path / "events.jsonl"))
    yield store
    store.close()


@pytest.fixture
def storage(event_store):
    from storage import MemStorage
    return MemStorage(event_store)


@pytest.fixture
def stocked_storage(storage):
    """Storage holding a few valued players across positions."""
    from models import Player
    rows = [
        ("4984", "Josh", "Allen", "QB", "BUF", 28, 8500, 3, 1),
        ("7564", "Ja'Marr", "Chase", "WR", "CIN", 24, 10200, 1, 1),
        ("9509", "Bijan", "Robinson", "RB", "ATL", 22, 9800, 2, 1),
        ("8150", "Sam", "LaPorta", "TE", "DET", 23, 6500, 5, 1),
        ("6794", "Justin", "Jefferson", "WR", "MIN", 25, 7900, 4, 2),
    ]
    for pid, first, last, pos, team, age, value, rank, pos_rank in rows:
        storage.upsert_player(Player(
            id=pid, first_name=first, last_name=last, position=pos, team=team, age=age,
            ktc_value=value, ktc_rank=rank, position_rank=pos_rank,
        ))
    storage.upsert_player(Player(id="1", first_name="Tyler", last_name="Bass", position="K", team="BUF"))
    return storage

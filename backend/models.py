"""
Pydantic models for the Dynasty Draft Assistant.
Defines Sleeper payload shapes, the pick-resolution domain, player and
valuation records, mock-draft/watchlist/session records, and API bodies.
"""

import time
from typing import Optional, Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


def _roster_key(value: Any) -> Any:
    """Sleeper sends roster ids as ints in some payloads and as string keys
    in others; everything downstream compares them as strings."""
    if value is None or isinstance(value, str):
        return value
    return str(value)


# =====================================================================
# Incoming from the Sleeper API
# =====================================================================

class SleeperUser(BaseModel):
    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar: Optional[str] = None

    model_config = {"extra": "allow"}


class SleeperLeague(BaseModel):
    league_id: str
    name: str = "Unknown League"
    sport: str = "nfl"
    season: str = ""
    status: str = ""
    settings: dict[str, Any] = {}
    scoring_settings: dict[str, Any] = {}
    roster_positions: list[str] = []
    total_rosters: int = 0

    model_config = {"extra": "allow"}


class SleeperDraft(BaseModel):
    draft_id: str
    league_id: Optional[str] = None
    type: str = "snake"
    status: str = ""
    sport: str = "nfl"
    season: str = ""
    settings: dict[str, Any] = {}
    start_time: Optional[int] = None
    # user_id -> original slot
    draft_order: Optional[dict[str, int]] = None
    # slot (as string key) -> roster_id
    slot_to_roster_id: Optional[dict[str, Optional[int]]] = None

    model_config = {"extra": "allow"}


class SleeperDraftPick(BaseModel):
    draft_id: Optional[str] = None
    player_id: Optional[str] = None
    picked_by: Optional[str] = None
    roster_id: Optional[int] = None
    round: int
    pick_no: int
    draft_slot: Optional[int] = None
    is_keeper: Optional[bool] = None
    metadata: Optional[dict[str, Any]] = None

    model_config = {"extra": "allow"}


class SleeperTradedPick(BaseModel):
    season: str
    round: int
    roster_id: int
    previous_owner_id: int
    owner_id: int

    model_config = {"extra": "allow"}


class SleeperPlayer(BaseModel):
    player_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    position: Optional[str] = None
    team: Optional[str] = None
    age: Optional[int] = None
    years_exp: Optional[int] = None
    height: Optional[Any] = None  # "6'2\"" or "74" depending on the player
    weight: Optional[Any] = None
    status: Optional[str] = None
    injury_status: Optional[str] = None
    fantasy_positions: Optional[list[str]] = None
    active: Optional[bool] = None

    model_config = {"extra": "allow"}


class ConnectionCheck(BaseModel):
    valid: bool
    league: Optional[SleeperLeague] = None
    draft: Optional[SleeperDraft] = None
    user: Optional[SleeperUser] = None
    error: Optional[str] = None


# =====================================================================
# Pick resolution
# =====================================================================

class DraftConfiguration(BaseModel):
    """Immutable per draft instance. Roster ids are strings."""
    total_rounds: int
    total_teams: int
    # roster_id -> original slot position in [1, total_teams]
    slot_assignment: dict[str, int]
    draft_type: str = "snake"
    season: str = ""

    model_config = {"frozen": True}

    @field_validator("slot_assignment", mode="before")
    @classmethod
    def _string_roster_keys(cls, value):
        if isinstance(value, dict):
            return {_roster_key(k): v for k, v in value.items()}
        return value

    @property
    def total_picks(self) -> int:
        return self.total_rounds * self.total_teams


class CompletedPick(BaseModel):
    pick_no: int
    round: Optional[int] = None
    roster_id: Optional[str] = None
    player_id: Optional[str] = None

    @field_validator("roster_id", "player_id", mode="before")
    @classmethod
    def _as_string(cls, value):
        return _roster_key(value)

    @property
    def is_made(self) -> bool:
        """A slot with no player assigned has not actually been picked."""
        return bool(self.player_id)


class PickOwnershipTrade(BaseModel):
    season: str
    round: int
    roster_id: Optional[str] = None  # original owner as reported by the platform
    previous_owner_id: str
    owner_id: str

    @field_validator("roster_id", "previous_owner_id", "owner_id", "season", mode="before")
    @classmethod
    def _as_string(cls, value):
        return _roster_key(value)


class ResolvedPick(BaseModel):
    round: int
    pick_in_round: int
    absolute_pick: int
    is_next: bool
    picks_away: int
    is_traded: bool

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class CurrentPick(BaseModel):
    round: int
    pick_in_round: int
    absolute_pick: int
    total_picks: int

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class PickOwner(BaseModel):
    """One cell of the remaining-pick ownership board."""
    round: int
    pick_in_round: int
    absolute_pick: int
    slot: int
    original_owner: str
    owner: str
    is_traded: bool = False


class PickResolution(BaseModel):
    current_pick: CurrentPick
    owned_picks: list[ResolvedPick] = []
    traded_picks_count: int = 0
    is_complete: bool = False


class DraftSettingsSummary(BaseModel):
    rounds: int
    teams: int
    type: str


class DraftOrderResponse(BaseModel):
    """Payload of GET /drafts/{draft_id}/order, camelCase on the wire."""
    current_pick: CurrentPick
    user_picks: list[ResolvedPick] = []
    draft_order: dict[str, int] = {}
    traded_picks_count: int = 0
    settings: DraftSettingsSummary

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# =====================================================================
# Players & valuations
# =====================================================================

class PlayerValuation(BaseModel):
    """Validated dynasty value record. Produced only by valuations.py."""
    name: str
    position: str
    team: str = ""
    value: int
    rank: Optional[int] = None

    model_config = {"frozen": True, "extra": "forbid"}


class KTCRankings(BaseModel):
    players: list[PlayerValuation] = []
    last_updated: float = 0.0
    quarantined: int = 0


class Player(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    position: Optional[str] = None
    team: Optional[str] = None
    age: Optional[int] = None
    years_exp: Optional[int] = None
    height: Optional[Any] = None
    weight: Optional[Any] = None
    status: Optional[str] = None
    injury_status: Optional[str] = None
    ktc_value: Optional[int] = None
    ktc_rank: Optional[int] = None
    position_rank: Optional[int] = None
    updated_at: float = Field(default_factory=time.time)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


# =====================================================================
# Stored records
# =====================================================================

class LeagueRecord(BaseModel):
    id: str
    name: str
    sport: str
    season: str
    status: str
    total_rosters: int
    settings: dict[str, Any] = {}
    created_at: float = Field(default_factory=time.time)


class DraftRecord(BaseModel):
    id: str
    league_id: Optional[str] = None
    type: str
    status: str
    sport: str
    season: str
    settings: dict[str, Any] = {}
    start_time: Optional[int] = None
    created_at: float = Field(default_factory=time.time)


class DraftPickRecord(BaseModel):
    id: int = 0
    draft_id: str
    player_id: Optional[str] = None
    picked_by: Optional[str] = None
    roster_id: Optional[int] = None
    round: int
    pick_no: int
    is_keeper: bool = False
    metadata: dict[str, Any] = {}
    picked_at: Optional[float] = None


class MockDraft(BaseModel):
    id: str
    user_id: str
    name: str
    league_settings: dict[str, Any] = {}
    # team_id -> original slot
    draft_order: dict[str, int] = {}
    user_team_id: Optional[str] = None
    current_pick: int = 1
    is_completed: bool = False
    total_rounds: int = 15
    total_teams: int = 12
    notes: Optional[str] = None
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)


class MockDraftPick(BaseModel):
    id: int = 0
    mock_draft_id: str
    round: int
    pick: int  # overall pick number
    round_pick: int
    team_id: str
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    player_position: Optional[str] = None
    player_team: Optional[str] = None
    is_user_pick: bool = False
    picked_at: float = Field(default_factory=time.time)


class WatchlistItem(BaseModel):
    id: int = 0
    user_id: str
    player_id: str
    notes: Optional[str] = None
    created_at: float = Field(default_factory=time.time)


class Session(BaseModel):
    id: int = 0
    league_id: str
    draft_id: str
    user_id: str
    league_name: str
    last_used: float = Field(default_factory=time.time)
    created_at: float = Field(default_factory=time.time)


class CacheEntry(BaseModel):
    cache_key: str
    status: str = "active"  # active | updating | failed
    last_updated: float = Field(default_factory=time.time)
    data_count: int = 0
    metadata: dict[str, Any] = {}


class RefreshResult(BaseModel):
    success: bool
    count: int = 0
    error: Optional[str] = None


# =====================================================================
# Request bodies
# =====================================================================

class ConnectRequest(BaseModel):
    leagueId: Optional[str] = None
    draftId: Optional[str] = None
    userId: Optional[str] = None


class MockDraftCreate(BaseModel):
    user_id: str
    name: str
    league_settings: dict[str, Any] = {}
    draft_order: dict[str, int] = {}
    user_team_id: Optional[str] = None
    total_rounds: int = 15
    total_teams: int = 12
    notes: Optional[str] = None

    @field_validator("draft_order", mode="before")
    @classmethod
    def _string_team_keys(cls, value):
        if isinstance(value, dict):
            return {_roster_key(k): v for k, v in value.items()}
        return value

    @field_validator("user_team_id", mode="before")
    @classmethod
    def _string_team_id(cls, value):
        return _roster_key(value)


class MockDraftUpdate(BaseModel):
    name: Optional[str] = None
    notes: Optional[str] = None
    league_settings: Optional[dict[str, Any]] = None
    is_completed: Optional[bool] = None


class MockPickCreate(BaseModel):
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    player_position: Optional[str] = None
    player_team: Optional[str] = None


class WatchlistCreate(BaseModel):
    user_id: str
    player_id: str
    notes: Optional[str] = None


class RecommendationRequest(BaseModel):
    draftedPlayers: list[str] = []
    position: Optional[str] = None
    limit: int = 10

    model_config = {"extra": "allow"}

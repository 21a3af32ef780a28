"""
Dynasty Draft Assistant — Local backend server.
Connects to a Sleeper league and draft, works out which upcoming picks the
user owns after trades, keeps dynasty values fresh from KeepTradeCut, and
serves mock drafts, watchlists and recommendations to the frontend.

Run with: uvicorn server:app --host 0.0.0.0 --port 8000 --reload
"""

import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from data_cache import DataCacheService
from draft_order import get_draft_order
from errors import DraftAssistantError, InvalidRequest, NotFoundError
from event_store import EventStore
from ktc import KTCScraper
from mock_draft import mock_draft_order, prepare_mock_draft, record_pick, slot_history
from models import (
    ConnectRequest,
    DraftPickRecord,
    DraftRecord,
    LeagueRecord,
    MockDraftCreate,
    MockDraftUpdate,
    MockPickCreate,
    Player,
    RecommendationRequest,
    WatchlistCreate,
)
from recommendations import filter_players, recommend
from sleeper_client import SleeperClient
from storage import MemStorage

logger = logging.getLogger(__name__)

_start_time = time.time()


def configure_logging():
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


# -----------------------------------------------------------------
# Lifespan: open the event log, replay user data, start refresh loop
# -----------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    state = app.state

    event_store = state.storage.event_store
    if not event_store.is_open:
        event_store.open(state.store_path)
    replayed = state.storage.replay(event_store.replay())

    refresh_task = None
    if state.refresh_interval > 0:
        refresh_task = asyncio.create_task(state.data_cache.run_refresh_loop(state.refresh_interval))

    print(f"\n{'='*60}")
    print(f"  Dynasty Draft Assistant")
    print(f"{'='*60}")
    print(f"  Sleeper API:     {settings.sleeper_base_url}")
    print(f"  KTC format:      {settings.ktc_format}")
    print(f"  Event log:       {state.store_path}")
    if replayed:
        print(f"  Events replayed: {replayed} "
              f"({len(state.storage.mock_drafts)} mock drafts, {len(state.storage.sessions)} sessions)")
    if refresh_task:
        print(f"  Data refresh:    every {settings.refresh_interval_minutes} min")
    else:
        print(f"  Data refresh:    on demand")
    print(f"{'='*60}\n")
    yield
    if refresh_task:
        refresh_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await refresh_task
    event_store.close()


def create_app(
    storage: Optional[MemStorage] = None,
    sleeper: Optional[SleeperClient] = None,
    ktc: Optional[KTCScraper] = None,
    store_path: Optional[str] = None,
    refresh_interval: Optional[float] = None,
) -> FastAPI:
    """Build the app with its collaborators on app.state. Tests pass fakes."""
    app = FastAPI(title="Dynasty Draft Assistant", lifespan=lifespan)

    app.state.storage = storage or MemStorage(EventStore())
    app.state.sleeper = sleeper or SleeperClient()
    app.state.ktc = ktc or KTCScraper()
    app.state.data_cache = DataCacheService(app.state.storage, app.state.sleeper, app.state.ktc)
    app.state.store_path = store_path or settings.store_path
    app.state.refresh_interval = (
        settings.refresh_interval_seconds if refresh_interval is None else refresh_interval
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DraftAssistantError)
    async def _assistant_error(request: Request, exc: DraftAssistantError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
        )

    app.include_router(router, prefix="/api")
    app.add_api_route("/drafts/{draft_id}/order", draft_order, methods=["GET"])
    return app


router = APIRouter()


# -----------------------------------------------------------------
# Health
# -----------------------------------------------------------------

@router.get("/health")
async def health_check(request: Request):
    storage: MemStorage = request.app.state.storage
    return {
        "status": "ok",
        "uptime": round(time.time() - _start_time, 1),
        "players": len(storage.players),
        "mock_drafts": len(storage.mock_drafts),
    }


# -----------------------------------------------------------------
# Sleeper
# -----------------------------------------------------------------

@router.post("/sleeper/connect")
async def connect(data: ConnectRequest, request: Request):
    """Validate a league/draft/user triple, cache it, and save a session."""
    if not (data.leagueId and data.draftId and data.userId):
        raise InvalidRequest("League ID, Draft ID, and User ID are required")

    state = request.app.state
    check = await state.sleeper.validate_connection(data.leagueId, data.draftId, data.userId)
    if not check.valid:
        raise InvalidRequest(check.error or "Invalid connection")

    league = state.storage.upsert_league(LeagueRecord(
        id=check.league.league_id,
        name=check.league.name,
        sport=check.league.sport,
        season=check.league.season,
        status=check.league.status,
        total_rosters=check.league.total_rosters,
        settings=check.league.settings,
    ))
    draft = state.storage.upsert_draft(DraftRecord(
        id=check.draft.draft_id,
        league_id=check.draft.league_id,
        type=check.draft.type,
        status=check.draft.status,
        sport=check.draft.sport,
        season=check.draft.season,
        settings=check.draft.settings,
        start_time=check.draft.start_time,
    ))

    await state.data_cache.ensure_current()
    if not state.storage.players_with_values():
        logger.info("No dynasty values loaded, falling back to curated values")
        state.data_cache.apply_curated_values()

    state.storage.create_session(league.id, draft.id, data.userId, league.name)
    return {
        "success": True,
        "league": league.model_dump(),
        "draft": draft.model_dump(),
        "user": check.user.model_dump(),
    }


@router.get("/sleeper/draft/{draft_id}/picks")
async def sleeper_draft_picks(draft_id: str, request: Request):
    state = request.app.state
    picks = await state.sleeper.get_draft_picks(draft_id)
    stored = [
        state.storage.add_draft_pick(DraftPickRecord(
            draft_id=draft_id,
            player_id=p.player_id,
            picked_by=p.picked_by,
            roster_id=p.roster_id,
            round=p.round,
            pick_no=p.pick_no,
            is_keeper=bool(p.is_keeper),
            metadata=p.metadata or {},
        ))
        for p in picks
    ]
    return [p.model_dump() for p in stored]


async def draft_order(
    draft_id: str,
    request: Request,
    userId: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
):
    """Current pick plus the requesting user's upcoming picks after trades."""
    response = await get_draft_order(request.app.state.sleeper, draft_id, userId, limit)
    return response.model_dump(by_alias=True)


router.add_api_route("/sleeper/draft/{draft_id}/order", draft_order, methods=["GET"])


@router.get("/sleeper/players")
async def sleeper_players(request: Request):
    state = request.app.state
    raw = await state.sleeper.get_all_players()
    positions = settings.sleeper_position_list
    stored = [
        state.storage.upsert_player(Player(
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
        for p in raw.values()
        if p.player_id and p.position in positions
    ]
    return [p.model_dump() for p in stored]


# -----------------------------------------------------------------
# KeepTradeCut
# -----------------------------------------------------------------

@router.get("/ktc/rankings")
async def ktc_rankings(request: Request, refresh: bool = False):
    state = request.app.state
    if not refresh:
        cached = state.storage.players_with_values(settings.dynasty_position_list)
        if cached:
            return {
                "players": [
                    {"name": p.full_name, "position": p.position, "team": p.team, "value": p.ktc_value}
                    for p in cached
                ],
                "lastUpdated": state.ktc.last_updated,
                "source": "cached",
            }
    rankings = await state.ktc.get_rankings(force_refresh=refresh)
    return {
        "players": [p.model_dump() for p in rankings.players],
        "lastUpdated": rankings.last_updated,
        "source": "keeptradecut",
    }


@router.get("/ktc/player/{name}")
async def ktc_player(name: str, request: Request, position: Optional[str] = None):
    value = await request.app.state.ktc.get_player_value(name, position)
    return {"name": name, "position": position, "value": value}


@router.get("/ktc/search")
async def ktc_search(request: Request, q: Optional[str] = None):
    if not q or not q.strip():
        raise InvalidRequest("Search query required")
    results = await request.app.state.ktc.search(q)
    return [p.model_dump() for p in results]


@router.post("/ktc/refresh")
async def ktc_refresh(request: Request):
    rankings = await request.app.state.ktc.get_rankings(force_refresh=True)
    return {
        "message": "KTC rankings refreshed",
        "playerCount": len(rankings.players),
        "lastUpdated": rankings.last_updated,
    }


@router.post("/ktc/update-values")
async def ktc_update_values(request: Request):
    updated = request.app.state.data_cache.apply_curated_values()
    return {"message": f"Updated {updated} players with dynasty values", "updatedCount": updated}


# -----------------------------------------------------------------
# Data cache
# -----------------------------------------------------------------

@router.get("/data-cache/status")
async def data_cache_status(request: Request):
    return request.app.state.data_cache.stats()


@router.post("/data-cache/refresh")
async def data_cache_refresh(request: Request):
    results = await request.app.state.data_cache.refresh_all()
    return {
        "message": "Data refresh completed",
        "results": {key: r.model_dump() for key, r in results.items()},
    }


@router.post("/data-cache/refresh/{cache_key}")
async def data_cache_refresh_key(cache_key: str, request: Request):
    result = await request.app.state.data_cache.refresh(cache_key)
    return {"message": f"{cache_key} refresh completed", "result": result.model_dump()}


# -----------------------------------------------------------------
# Mock drafts
# -----------------------------------------------------------------

@router.post("/mock-drafts")
async def create_mock_draft(data: MockDraftCreate, request: Request):
    mock = request.app.state.storage.create_mock_draft(prepare_mock_draft(data))
    return mock.model_dump()


@router.get("/mock-drafts/user/{user_id}")
async def user_mock_drafts(user_id: str, request: Request):
    return [m.model_dump() for m in request.app.state.storage.mock_drafts_for_user(user_id)]


@router.get("/mock-drafts/picks/slot")
async def mock_picks_by_slot(
    request: Request,
    round: Optional[int] = None,
    pick: Optional[int] = None,
):
    if round is None or pick is None:
        raise InvalidRequest("Round and pick parameters required")
    return slot_history(request.app.state.storage, round, pick)


def _mock_or_404(storage: MemStorage, mock_id: str):
    mock = storage.get_mock_draft(mock_id)
    if mock is None:
        raise NotFoundError("Mock draft not found")
    return mock


@router.get("/mock-drafts/{mock_id}")
async def get_mock_draft(mock_id: str, request: Request):
    return _mock_or_404(request.app.state.storage, mock_id).model_dump()


@router.put("/mock-drafts/{mock_id}")
async def update_mock_draft(mock_id: str, data: MockDraftUpdate, request: Request):
    storage: MemStorage = request.app.state.storage
    _mock_or_404(storage, mock_id)
    mock = storage.update_mock_draft(mock_id, **data.model_dump(exclude_none=True))
    return mock.model_dump()


@router.delete("/mock-drafts/{mock_id}")
async def delete_mock_draft(mock_id: str, request: Request):
    if not request.app.state.storage.delete_mock_draft(mock_id):
        raise NotFoundError("Mock draft not found")
    return {"success": True}


@router.get("/mock-drafts/{mock_id}/picks")
async def get_mock_draft_picks(mock_id: str, request: Request):
    storage: MemStorage = request.app.state.storage
    _mock_or_404(storage, mock_id)
    return [p.model_dump() for p in storage.get_mock_draft_picks(mock_id)]


@router.post("/mock-drafts/{mock_id}/picks")
async def add_mock_draft_pick(mock_id: str, data: MockPickCreate, request: Request):
    return record_pick(request.app.state.storage, mock_id, data).model_dump()


@router.get("/mock-drafts/{mock_id}/order")
async def get_mock_draft_order(
    mock_id: str,
    request: Request,
    limit: Optional[int] = Query(None, ge=1),
):
    response = mock_draft_order(
        request.app.state.storage, mock_id, limit or settings.upcoming_picks_limit
    )
    return response.model_dump(by_alias=True)


# -----------------------------------------------------------------
# Players
# -----------------------------------------------------------------

@router.get("/players")
async def list_players(
    request: Request,
    position: Optional[str] = None,
    team: Optional[str] = None,
    search: Optional[str] = None,
):
    players = filter_players(request.app.state.storage, position, team, search)
    return [p.model_dump() for p in players]


@router.get("/players/{player_id}")
async def get_player(player_id: str, request: Request):
    player = request.app.state.storage.get_player(player_id)
    if player is None:
        raise NotFoundError("Player not found")
    return player.model_dump()


# -----------------------------------------------------------------
# Watchlist
# -----------------------------------------------------------------

@router.get("/watchlist/{user_id}")
async def get_watchlist(user_id: str, request: Request):
    return [item.model_dump() for item in request.app.state.storage.get_watchlist(user_id)]


@router.post("/watchlist")
async def add_to_watchlist(data: WatchlistCreate, request: Request):
    item = request.app.state.storage.add_to_watchlist(data.user_id, data.player_id, data.notes)
    return item.model_dump()


@router.delete("/watchlist/{item_id}")
async def remove_from_watchlist(item_id: int, request: Request):
    if not request.app.state.storage.remove_from_watchlist(item_id):
        raise NotFoundError("Watchlist item not found")
    return {"success": True}


# -----------------------------------------------------------------
# Recommendations
# -----------------------------------------------------------------

@router.post("/recommendations")
async def recommendations(data: RecommendationRequest, request: Request):
    picks = recommend(
        request.app.state.storage,
        data.draftedPlayers,
        position=data.position,
        limit=data.limit,
    )
    return {"recommendations": picks}


# -----------------------------------------------------------------
# Sessions
# -----------------------------------------------------------------

@router.get("/sessions")
async def get_sessions(request: Request):
    return [s.model_dump() for s in request.app.state.storage.get_sessions()]


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: int, request: Request):
    if not request.app.state.storage.delete_session(session_id):
        raise NotFoundError("Session not found")
    return {"success": True}


app = create_app()

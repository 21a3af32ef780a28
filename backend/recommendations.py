"""
Player pool queries and best-available recommendations.

The pool is every stored player at a dynasty position with a positive
value. Recommendations rank what is left of it after removing drafted
players, highest dynasty value first.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

from config import settings

if TYPE_CHECKING:
    from models import Player
    from storage import MemStorage


def filter_players(
    storage: "MemStorage",
    position: Optional[str] = None,
    team: Optional[str] = None,
    search: Optional[str] = None,
) -> list["Player"]:
    players = storage.players_with_values(settings.dynasty_position_list)
    if position:
        players = [p for p in players if p.position == position.upper()]
    if team:
        players = [p for p in players if p.team == team.upper()]
    if search:
        q = search.lower()
        players = [
            p for p in players
            if any(q in (field or "").lower() for field in (p.first_name, p.last_name, p.team, p.position))
        ]
    return players


def _reason(player: "Player", pool_rank: int) -> str:
    """Short human-readable note on why a player is on the board."""
    parts = []
    if player.position_rank:
        parts.append(f"{player.position}{player.position_rank} in dynasty value")
    if pool_rank == 1:
        parts.append("highest value still available")
    elif pool_rank <= 3:
        parts.append(f"#{pool_rank} value on the board")
    if player.age is not None and player.age <= 24:
        parts.append(f"age {player.age} with long-term upside")
    if player.injury_status:
        parts.append(f"currently {player.injury_status}")
    return ". ".join(parts) + "." if parts else "Best remaining value."


def recommend(
    storage: "MemStorage",
    drafted_player_ids: Iterable[str] = (),
    position: Optional[str] = None,
    limit: int = 10,
) -> list[dict]:
    drafted = set(drafted_player_ids)
    available = [
        p for p in filter_players(storage, position=position)
        if p.id not in drafted
    ]

    top_value = available[0].ktc_value if available else 0
    recommendations = []
    for rank, player in enumerate(available[:max(0, limit)], start=1):
        recommendations.append({
            "player": player.model_dump(),
            "reason": _reason(player, rank),
            "valueScore": round(100 * (player.ktc_value or 0) / top_value, 1) if top_value else 0.0,
        })
    return recommendations

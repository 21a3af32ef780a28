"""
Dynasty value ingestion.

Every valuation that enters the system (scraped KeepTradeCut rows, the
curated values CSV) passes through parse_valuation(). Records that fail
validation are quarantined with a reason instead of being stored.

Scraped rows are messy: names arrive with the team glued on
("Michael Penix Jr.ATL"), positions carry rank/age/tier text
("QB1 26 y.o. Tier 2"), values come with separators ("9,876"), and the
rankings mix in draft-pick pseudo-players ("2026 Mid 1st").
"""

import csv
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from config import settings
from errors import ValuationError
from fuzzy_match import NameResolver, normalize_name
from models import PlayerValuation

logger = logging.getLogger(__name__)

# "CeeDee LambDAL" -> ("CeeDee Lamb", "DAL"); roman-numeral suffixes never match
# because the character before the team code must be lowercase or punctuation.
_GLUED_TEAM = re.compile(r"^(.*[a-z.'’])([A-Z]{2,4})$")
_POSITION = re.compile(r"^(QB|RB|WR|TE|K|DEF|PICK)")
_TEAM = re.compile(r"^[A-Z]{2,4}$")
_PICK_NAME = re.compile(r"\b(early|mid|late)\b|\b\d(st|nd|rd|th)\b", re.IGNORECASE)


class QuarantinedRecord(BaseModel):
    record: dict[str, Any]
    reason: str


class IngestResult(BaseModel):
    accepted: list[PlayerValuation] = []
    quarantined: list[QuarantinedRecord] = []


# -----------------------------------------------------------------
# Field cleaning
# -----------------------------------------------------------------

def _raw_name(raw: dict) -> str:
    for key in ("name", "Name", "PlayerName", "player_name"):
        if raw.get(key):
            return str(raw[key])
    first = raw.get("firstName") or raw.get("first_name") or ""
    last = raw.get("lastName") or raw.get("last_name") or ""
    return f"{first} {last}"


def split_glued_team(name: str) -> tuple[str, Optional[str]]:
    name = name.strip()
    match = _GLUED_TEAM.match(name)
    if match:
        return match.group(1).strip(), match.group(2)
    return name, None


def clean_position(raw_position: Any) -> str:
    """'QB1 26 y.o. Tier 2' -> 'QB'."""
    text = str(raw_position or "").strip().upper()
    match = _POSITION.match(text)
    return match.group(1) if match else text


def parse_value(raw_value: Any) -> int:
    if raw_value is None:
        raise ValuationError("missing value")
    if isinstance(raw_value, bool):
        raise ValuationError(f"value is not numeric: {raw_value!r}")
    if isinstance(raw_value, (int, float)):
        value = int(raw_value)
    else:
        text = str(raw_value).strip()
        if text.startswith("-"):
            raise ValuationError(f"negative value: {text}")
        digits = re.sub(r"[^\d]", "", text)
        if not digits:
            raise ValuationError(f"value is not numeric: {text!r}")
        value = int(digits)
    if value < 0:
        raise ValuationError(f"negative value: {value}")
    return min(value, settings.ktc_value_cap)


def parse_valuation(raw: dict, allowed_positions: Optional[list[str]] = None) -> PlayerValuation:
    """Validate one raw record into a PlayerValuation or raise ValuationError."""
    allowed = allowed_positions or settings.dynasty_position_list

    name, glued_team = split_glued_team(_raw_name(raw))
    if len(name) < 2:
        raise ValuationError("missing player name")

    position = clean_position(raw.get("position") or raw.get("Position"))
    if position == "PICK" or _PICK_NAME.search(name):
        raise ValuationError(f"draft pick, not a player: {name}")
    if position not in allowed:
        raise ValuationError(f"unsupported position {position or '(blank)'!r} for {name}")

    team = str(raw.get("team") or raw.get("Team") or glued_team or "").strip().upper()
    if team and not _TEAM.match(team):
        raise ValuationError(f"invalid team code {team!r} for {name}")

    value = parse_value(raw.get("value", raw.get("Value")))

    rank = raw.get("rank") or raw.get("Rank")
    try:
        rank = int(rank) if rank not in (None, "") else None
    except (TypeError, ValueError):
        rank = None

    return PlayerValuation(name=name, position=position, team=team, value=value, rank=rank)


def ingest_records(
    records: Iterable[dict],
    allowed_positions: Optional[list[str]] = None,
) -> IngestResult:
    """Validate a batch. First occurrence of a (name, position) wins."""
    result = IngestResult()
    seen: set[tuple[str, str]] = set()
    for raw in records:
        try:
            valuation = parse_valuation(raw, allowed_positions)
        except ValuationError as e:
            result.quarantined.append(QuarantinedRecord(record=dict(raw), reason=str(e)))
            continue
        key = (normalize_name(valuation.name), valuation.position)
        if key in seen:
            result.quarantined.append(QuarantinedRecord(record=dict(raw), reason="duplicate"))
            continue
        seen.add(key)
        result.accepted.append(valuation)

    if result.quarantined:
        logger.info("Quarantined %d of %d valuation records",
                    len(result.quarantined), len(result.quarantined) + len(result.accepted))
    return result


# -----------------------------------------------------------------
# Curated CSV
# -----------------------------------------------------------------

def load_values_csv(csv_path: str) -> IngestResult:
    """
    Load curated dynasty values from a local CSV.

    Expected columns: Name (or FirstName/LastName), Position, Team, Value
    """
    path = Path(csv_path)
    if not path.exists():
        logger.warning("Dynasty values CSV not found: %s", csv_path)
        return IngestResult()

    with open(path, newline="", encoding="utf-8") as f:
        rows = []
        for row in csv.DictReader(f):
            if "FirstName" in row or "LastName" in row:
                row["firstName"] = row.pop("FirstName", "")
                row["lastName"] = row.pop("LastName", "")
            rows.append(row)
    return ingest_records(rows)


# -----------------------------------------------------------------
# Applying values to stored players
# -----------------------------------------------------------------

def apply_valuations(storage, valuations: list[PlayerValuation]) -> int:
    """Write value, overall rank and position rank onto matched players.

    Returns the number of players updated.
    """
    resolver = NameResolver()
    resolver.build_index(storage.all_players())

    ordered = sorted(valuations, key=lambda v: v.value, reverse=True)
    position_counts: dict[str, int] = {}
    updated = 0
    for overall, valuation in enumerate(ordered, start=1):
        position_counts[valuation.position] = position_counts.get(valuation.position, 0) + 1
        player_id = resolver.resolve(valuation.name, valuation.position)
        if player_id is None:
            logger.debug("No Sleeper match for %s (%s)", valuation.name, valuation.position)
            continue
        storage.update_player(
            player_id,
            ktc_value=valuation.value,
            ktc_rank=valuation.rank or overall,
            position_rank=position_counts[valuation.position],
        )
        updated += 1
    return updated

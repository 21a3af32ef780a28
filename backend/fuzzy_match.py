"""
Fuzzy name matching utility.

Matches names from KeepTradeCut and the curated values CSV onto Sleeper
player ids. The sources disagree in predictable ways:
  - KTC:     "A.J. Brown"          Sleeper: "AJ Brown"
  - KTC:     "Michael Penix Jr."   Sleeper: "Michael Penix"
  - KTC:     "Kenneth Walker III"  Sleeper: "Kenneth Walker"
  - KTC:     "Amon-Ra St. Brown"   Sleeper: "Amon-Ra St. Brown"

Strategy:
  1. Aggressive normalization (strip punctuation, suffixes, lowercase)
  2. Exact match on normalized form, preferring the same position
  3. If no exact match, use RapidFuzz token_sort_ratio with a threshold
  4. Cache resolved lookups so each name variant is fuzzy-matched once
"""

import re
from typing import Iterable, Optional

from rapidfuzz import fuzz, process

from models import Player

# Suffixes that sources include or omit inconsistently
_SUFFIXES = re.compile(
    r"\s+(jr\.?|sr\.?|ii|iii|iv|v|2nd|3rd)$", re.IGNORECASE
)

# Punctuation that varies between sources (A.J. vs AJ, Ja'Marr vs JaMarr)
_PUNCTUATION = re.compile(r"[.\-'’]")

# Minimum fuzzy score to accept a match (0-100)
FUZZY_THRESHOLD = 88


def normalize_name(name: str) -> str:
    """
    Aggressively normalize a player name for exact-match lookups.
    "A.J. Brown Jr." -> "aj brown"
    "Kenneth Walker III" -> "kenneth walker"
    "Ja'Marr Chase" -> "jamarr chase"
    """
    s = name.strip().lower()
    s = _PUNCTUATION.sub("", s)      # Remove dots, hyphens, apostrophes
    s = _SUFFIXES.sub("", s)         # Remove Jr, Sr, II, III, etc.
    s = re.sub(r"\s+", " ", s)       # Collapse multiple spaces
    return s.strip()


class NameResolver:
    """
    Maps incoming player names to Sleeper player ids.

    Usage:
        resolver = NameResolver()
        resolver.build_index(storage.all_players())
        player_id = resolver.resolve("A.J. Brown", position="WR")
    """

    def __init__(self):
        # normalized name -> [(position, player_id), ...]
        self._by_name: dict[str, list[tuple[Optional[str], str]]] = {}
        # (raw name, position) -> player_id or None
        self._cache: dict[tuple[str, Optional[str]], Optional[str]] = {}
        # (normalized_name, position, player_id) for fuzzy search
        self._corpus: list[tuple[str, Optional[str], str]] = []

    def __len__(self) -> int:
        return len(self._corpus)

    def build_index(self, players: Iterable[Player]):
        self._by_name.clear()
        self._cache.clear()
        self._corpus.clear()

        for player in players:
            full = player.full_name
            if not full:
                continue
            key = normalize_name(full)
            position = (player.position or "").upper() or None
            self._by_name.setdefault(key, []).append((position, player.id))
            self._corpus.append((key, position, player.id))

    def resolve(self, incoming_name: str, position: Optional[str] = None) -> Optional[str]:
        """
        Resolve a name (optionally constrained to a position) to a player id.
        Returns None if no match found above the threshold.
        """
        if not incoming_name:
            return None
        position = position.upper() if position else None

        cache_key = (incoming_name, position)
        if cache_key in self._cache:
            return self._cache[cache_key]

        result = self._exact(normalize_name(incoming_name), position)
        if result is None:
            result = self._fuzzy(normalize_name(incoming_name), position)

        self._cache[cache_key] = result
        return result

    def _exact(self, key: str, position: Optional[str]) -> Optional[str]:
        candidates = self._by_name.get(key)
        if not candidates:
            return None
        if position is None:
            return candidates[0][1]
        for cand_pos, player_id in candidates:
            if cand_pos == position:
                return player_id
        return None

    def _fuzzy(self, key: str, position: Optional[str]) -> Optional[str]:
        corpus = [
            (name, player_id) for name, pos, player_id in self._corpus
            if position is None or pos == position
        ]
        if not corpus:
            return None

        match = process.extractOne(
            key,
            [name for name, _ in corpus],
            scorer=fuzz.token_sort_ratio,
            score_cutoff=FUZZY_THRESHOLD,
        )
        if match is None:
            return None
        _, _, idx = match
        return corpus[idx][1]

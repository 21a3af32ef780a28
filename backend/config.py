"""
Application settings loaded from .env file via pydantic-settings.
Covers the Sleeper API client, the KeepTradeCut scraper, the data cache,
and draft defaults used when the platform omits settings.
"""

from pydantic_settings import BaseSettings
from pydantic import model_validator


# -----------------------------------------------------------------
# Position profiles
# -----------------------------------------------------------------

POSITION_PROFILES = {
    "dynasty": ["QB", "RB", "WR", "TE"],
    "sleeper": ["QB", "RB", "WR", "TE", "K", "DEF"],
}

KTC_FORMATS = ("superflex", "1qb")

_DYNASTY_DEFAULT = ",".join(POSITION_PROFILES["dynasty"])
_SLEEPER_DEFAULT = ",".join(POSITION_PROFILES["sleeper"])


class Settings(BaseSettings):
    # Sleeper API
    sleeper_base_url: str = "https://api.sleeper.app/v1"
    sleeper_timeout: float = 10.0
    user_agent: str = "Dynasty-Draft-Analyzer/1.0"

    # KeepTradeCut scraping
    ktc_base_url: str = "https://keeptradecut.com/dynasty-rankings"
    ktc_format: str = "superflex"
    ktc_max_pages: int = 10
    ktc_page_size: int = 50
    ktc_timeout: float = 15.0
    ktc_page_delay: float = 1.0
    ktc_cache_seconds: int = 300
    ktc_value_cap: int = 10000

    # Data
    values_csv_path: str = "data/dynasty_values.csv"
    store_path: str = "data/store.jsonl"

    # Data cache
    cache_max_age_hours: float = 24.0
    refresh_interval_minutes: int = 60
    max_cached_players: int = 1000

    # Draft defaults when the platform leaves them out
    default_rounds: int = 15
    default_teams: int = 12
    upcoming_picks_limit: int = 5

    # Position lists, comma-separated, parsed below
    dynasty_positions: str = _DYNASTY_DEFAULT
    sleeper_positions: str = _SLEEPER_DEFAULT

    log_level: str = "INFO"

    @model_validator(mode="after")
    def _normalize_values(self):
        """Fall back to superflex for unknown KTC formats and keep the
        Sleeper position list a superset of the dynasty list."""
        self.ktc_format = self.ktc_format.lower().strip()
        if self.ktc_format not in KTC_FORMATS:
            self.ktc_format = "superflex"
        self.sleeper_base_url = self.sleeper_base_url.rstrip("/")
        missing = [p for p in self.dynasty_position_list if p not in self.sleeper_position_list]
        if missing:
            self.sleeper_positions = ",".join(self.sleeper_position_list + missing)
        return self

    # -----------------------------------------------------------------
    # Derived properties
    # -----------------------------------------------------------------

    @property
    def dynasty_position_list(self) -> list[str]:
        return _parse_positions(self.dynasty_positions)

    @property
    def sleeper_position_list(self) -> list[str]:
        return _parse_positions(self.sleeper_positions)

    @property
    def cache_max_age_seconds(self) -> float:
        return self.cache_max_age_hours * 3600

    @property
    def refresh_interval_seconds(self) -> int:
        return max(0, self.refresh_interval_minutes) * 60

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


def _parse_positions(raw: str) -> list[str]:
    """Parse 'qb, RB,WR' into ['QB', 'RB', 'WR'], dropping blanks and repeats."""
    result: list[str] = []
    for part in raw.split(","):
        pos = part.strip().upper()
        if pos and pos not in result:
            result.append(pos)
    return result


settings = Settings()

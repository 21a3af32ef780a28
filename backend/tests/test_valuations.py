"""
Tests for valuations.py: field cleaning, record validation and quarantine,
the curated CSV loader, and applying values to stored players.
"""

import pytest

from errors import ValuationError
from models import Player
from valuations import (
    apply_valuations,
    clean_position,
    ingest_records,
    load_values_csv,
    parse_valuation,
    parse_value,
    split_glued_team,
)


class TestFieldCleaning:
    @pytest.mark.parametrize("raw, expected", [
        ("CeeDee LambDAL", ("CeeDee Lamb", "DAL")),
        ("Michael Penix Jr.ATL", ("Michael Penix Jr.", "ATL")),
        ("Ja'Marr ChaseCIN", ("Ja'Marr Chase", "CIN")),
        ("Kenneth Walker III", ("Kenneth Walker III", None)),
        ("Josh Allen", ("Josh Allen", None)),
    ])
    def test_split_glued_team(self, raw, expected):
        assert split_glued_team(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("QB1 26 y.o. Tier 2", "QB"),
        ("wr12", "WR"),
        ("TE", "TE"),
        ("", ""),
        (None, ""),
    ])
    def test_clean_position(self, raw, expected):
        assert clean_position(raw) == expected

    def test_parse_value_strips_separators(self):
        assert parse_value("9,876") == 9876
        assert parse_value(" 4500 ") == 4500
        assert parse_value(3200.9) == 3200

    def test_parse_value_capped(self):
        assert parse_value("25000") == 10000

    @pytest.mark.parametrize("raw", ["-120", -5, "n/a", "", None, True])
    def test_parse_value_rejects(self, raw):
        with pytest.raises(ValuationError):
            parse_value(raw)


class TestParseValuation:
    def test_clean_record(self):
        v = parse_valuation({"name": "Bijan Robinson", "position": "RB1", "team": "atl", "value": "9,800", "rank": "2"})
        assert (v.name, v.position, v.team, v.value, v.rank) == ("Bijan Robinson", "RB", "ATL", 9800, 2)

    def test_glued_team_used_when_team_missing(self):
        v = parse_valuation({"name": "CeeDee LambDAL", "position": "WR", "value": 7500})
        assert v.name == "CeeDee Lamb"
        assert v.team == "DAL"

    def test_first_and_last_name_columns(self):
        v = parse_valuation({"firstName": "Puka", "lastName": "Nacua", "position": "WR", "value": 8000})
        assert v.name == "Puka Nacua"

    def test_bad_rank_becomes_none(self):
        v = parse_valuation({"name": "Josh Allen", "position": "QB", "value": 8500, "rank": "n/a"})
        assert v.rank is None

    @pytest.mark.parametrize("record, reason", [
        ({"name": "", "position": "QB", "value": 10}, "missing player name"),
        ({"name": "2026 Early 1st", "position": "PICK", "value": 5000}, "draft pick"),
        ({"name": "2025 Mid 2nd", "position": "RB", "value": 3000}, "draft pick"),
        ({"name": "Tyler Bass", "position": "K", "value": 100}, "unsupported position"),
        ({"name": "Josh Allen", "position": "QB", "team": "Buffalo Bills", "value": 8500}, "invalid team"),
        ({"name": "Josh Allen", "position": "QB", "value": "lots"}, "not numeric"),
    ])
    def test_rejected(self, record, reason):
        with pytest.raises(ValuationError, match=reason):
            parse_valuation(record)

    def test_allowed_positions_override(self):
        v = parse_valuation({"name": "Tyler Bass", "position": "K", "value": 100}, allowed_positions=["K"])
        assert v.position == "K"

    def test_valuation_is_strict(self):
        v = parse_valuation({"name": "Josh Allen", "position": "QB", "value": 8500, "extra": "ignored"})
        with pytest.raises(ValueError):
            type(v)(**v.model_dump(), extra="nope")


class TestIngestRecords:
    def test_splits_accepted_and_quarantined(self):
        result = ingest_records([
            {"name": "Josh Allen", "position": "QB", "value": 8500},
            {"name": "2026 Late 1st", "position": "PICK", "value": 4000},
            {"name": "Tyler Bass", "position": "K", "value": 100},
        ])
        assert [v.name for v in result.accepted] == ["Josh Allen"]
        assert len(result.quarantined) == 2
        assert result.quarantined[0].record["name"] == "2026 Late 1st"

    def test_duplicate_name_and_position_quarantined(self):
        result = ingest_records([
            {"name": "A.J. Brown", "position": "WR", "value": 7000},
            {"name": "AJ Brown", "position": "WR", "value": 6900},
        ])
        assert len(result.accepted) == 1
        assert result.accepted[0].value == 7000
        assert result.quarantined[0].reason == "duplicate"


class TestLoadValuesCsv:
    def test_bundled_csv_loads(self, _test_settings):
        result = load_values_csv(_test_settings.values_csv_path)
        assert len(result.accepted) > 50
        assert result.quarantined == []
        allen = next(v for v in result.accepted if v.name == "Josh Allen")
        assert (allen.position, allen.team, allen.value) == ("QB", "BUF", 8500)

    def test_missing_file_is_empty(self, tmp_path):
        result = load_values_csv(str(tmp_path / "nope.csv"))
        assert result.accepted == []

    def test_first_last_columns(self, tmp_path):
        path = tmp_path / "values.csv"
        path.write_text(
            "FirstName,LastName,Position,Team,Value\n"
            "Breece,Hall,RB,NYJ,\"8,100\"\n"
            "Some,Kicker,K,DAL,50\n",
            encoding="utf-8",
        )
        result = load_values_csv(str(path))
        assert [(v.name, v.value) for v in result.accepted] == [("Breece Hall", 8100)]
        assert len(result.quarantined) == 1


class TestApplyValuations:
    def test_values_written_with_ranks(self, storage):
        storage.upsert_player(Player(id="1", first_name="Josh", last_name="Allen", position="QB", team="BUF"))
        storage.upsert_player(Player(id="2", first_name="Lamar", last_name="Jackson", position="QB", team="BAL"))
        storage.upsert_player(Player(id="3", first_name="AJ", last_name="Brown", position="WR", team="PHI"))
        result = ingest_records([
            {"name": "Lamar Jackson", "position": "QB", "value": 8200},
            {"name": "Josh Allen", "position": "QB", "value": 8500},
            {"name": "A.J. Brown", "position": "WR", "value": 7000},
            {"name": "Nobody Known", "position": "RB", "value": 9000},
        ])

        assert apply_valuations(storage, result.accepted) == 3

        allen = storage.get_player("1")
        assert (allen.ktc_value, allen.ktc_rank, allen.position_rank) == (8500, 2, 1)
        jackson = storage.get_player("2")
        assert jackson.position_rank == 2
        assert storage.get_player("3").ktc_value == 7000

    def test_same_name_different_position(self, storage):
        storage.upsert_player(Player(id="qb", first_name="Josh", last_name="Allen", position="QB", team="BUF"))
        storage.upsert_player(Player(id="lb", first_name="Josh", last_name="Allen", position="WR", team="JAX"))
        valuation = parse_valuation({"name": "Josh Allen", "position": "QB", "value": 8500})
        apply_valuations(storage, [valuation])
        assert storage.get_player("qb").ktc_value == 8500
        assert storage.get_player("lb").ktc_value is None

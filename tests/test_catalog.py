"""Tests for catalog parsing and the adjacency snapshot."""

import logging
from datetime import datetime, timezone

import pytest

from points_engine.catalog import (
    Catalog,
    CatalogFormatError,
    build_catalog,
    parse_program,
    parse_rate_terms,
    parse_timestamp,
)
from points_engine.models import BonusRate, FlatRate, ProgramType


class TestParseTimestamp:

    def test_trailing_z_is_utc(self):
        assert parse_timestamp("2026-12-31T23:59:59Z") == datetime(2026, 12, 31, 23, 59, 59, tzinfo=timezone.utc)

    def test_plain_date(self):
        assert parse_timestamp("2024-01-31") == datetime(2024, 1, 31)

    def test_empty_values(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_invalid_value_raises(self):
        with pytest.raises(ValueError):
            parse_timestamp("next tuesday")


class TestParseRateTerms:

    def test_flat_rate(self):
        assert parse_rate_terms({"rate": 0.5, "bonus": False}) == FlatRate(rate=0.5)

    def test_bonus_rate_with_end_date(self):
        terms = parse_rate_terms({"rate": 1.0, "bonus": True, "bonusRate": 1.3, "bonusEndDate": "2026-12-31"})

        assert isinstance(terms, BonusRate)
        assert terms.bonus_rate == 1.3
        assert terms.end_date == datetime(2026, 12, 31)

    def test_stale_bonus_rate_dropped_without_flag(self):
        assert parse_rate_terms({"rate": 1.0, "bonus": False, "bonusRate": 2.0}) == FlatRate(rate=1.0)

    def test_bonus_flag_without_rate_falls_back_to_flat(self, caplog):
        with caplog.at_level(logging.WARNING):
            terms = parse_rate_terms({"from": "a", "to": "b", "rate": 1.0, "bonus": True})

        assert terms == FlatRate(rate=1.0)
        assert "no bonusRate" in caplog.text

    def test_unparseable_end_date_is_ignored(self):
        terms = parse_rate_terms({"rate": 1.0, "bonus": True, "bonusRate": 1.1, "bonusEndDate": "soon"})

        assert terms.end_date is None

    @pytest.mark.parametrize("raw", [{}, {"rate": None}, {"rate": "fast"}])
    def test_missing_or_bad_rate_raises(self, raw):
        with pytest.raises(CatalogFormatError):
            parse_rate_terms(raw)

    def test_non_numeric_bonus_rate_raises(self):
        with pytest.raises(CatalogFormatError, match="bonusRate"):
            parse_rate_terms({"from": "a", "to": "b", "rate": 1.0, "bonus": True, "bonusRate": "x"})


class TestParseProgram:

    def test_defaults(self):
        program = parse_program("hyatt", {})

        assert program.name == "hyatt"
        assert program.short_name == "hyatt"
        assert program.type is ProgramType.OTHER
        assert program.dollar_value == 0.0

    def test_unknown_type_becomes_other(self):
        assert parse_program("x", {"type": "cruise"}).type is ProgramType.OTHER

    def test_full_program(self):
        program = parse_program("hyatt", {"name": "World of Hyatt", "shortName": "Hyatt", "type": "hotel", "dollarValue": 0.017})

        assert program.short_name == "Hyatt"
        assert program.type is ProgramType.HOTEL
        assert program.dollar_value == 0.017

    def test_non_object_program_raises(self):
        with pytest.raises(CatalogFormatError, match="'hyatt' must be an object"):
            parse_program("hyatt", "World of Hyatt")

    def test_non_numeric_dollar_value_raises(self):
        with pytest.raises(CatalogFormatError, match="dollarValue"):
            parse_program("hyatt", {"dollarValue": "abc"})


class TestBuildCatalog:

    def test_requires_programs_and_conversions(self):
        with pytest.raises(CatalogFormatError):
            build_catalog({"conversions": []})
        with pytest.raises(CatalogFormatError):
            build_catalog({"programs": {}})
        with pytest.raises(CatalogFormatError):
            build_catalog([])

    def test_document_metadata(self):
        catalog = build_catalog({
            "programs": {},
            "conversions": [],
            "lastUpdated": "2026-10-01T12:00:00Z",
            "dataSource": "manual",
        })

        assert catalog.last_updated == datetime(2026, 10, 1, 12, tzinfo=timezone.utc)
        assert catalog.data_source == "manual"
        assert len(catalog) == 0

    def test_orphans_kept_in_conversions_but_not_indexed(self, caplog):
        document = {
            "programs": {"a": {"name": "A"}, "b": {"name": "B"}},
            "conversions": [
                {"from": "a", "to": "b", "rate": 1.0},
                {"from": "a", "to": "ghost", "rate": 1.0},
            ],
        }

        with caplog.at_level(logging.WARNING):
            catalog = build_catalog(document)

        assert len(catalog.conversions) == 2
        assert [c.to_id for c in catalog.outgoing("a")] == ["b"]
        assert catalog.incoming("ghost") == ()
        assert "1 orphaned conversion" in caplog.text


class TestCatalogSnapshot:

    def test_programs_copy_cannot_mutate_snapshot(self):
        catalog = build_catalog({"programs": {"a": {}}, "conversions": []})

        catalog.programs.pop("a")

        assert catalog.has_program("a")
        assert catalog.get_program("a").id == "a"

    def test_indexes_preserve_catalog_order(self):
        catalog = build_catalog({
            "programs": {"a": {}, "b": {}, "c": {}},
            "conversions": [
                {"from": "a", "to": "c", "rate": 1.0},
                {"from": "b", "to": "c", "rate": 2.0},
                {"from": "a", "to": "b", "rate": 3.0},
            ],
        })

        assert [c.to_id for c in catalog.outgoing("a")] == ["c", "b"]
        assert [c.from_id for c in catalog.incoming("c")] == ["a", "b"]

    def test_repr(self):
        catalog = Catalog(programs={}, conversions=[])

        assert repr(catalog) == "Catalog(programs=0, conversions=0)"

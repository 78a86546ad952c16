"""Tests for HintPathBuilder."""

from __future__ import annotations

from apicache.cache import HintPathBuilder


class TestExplodeNumber:
    def test_buckets_by_magnitude(self) -> None:
        parts = HintPathBuilder().explode_number("12345").build()
        assert parts == ["100000", "10000", "12000", "12300", "12345"]

    def test_small_number_uses_bucket_size_for_zero(self) -> None:
        parts = HintPathBuilder().explode_number("42").build()
        assert parts == ["100000", "10000", "1000", "100", "42"]

    def test_large_number(self) -> None:
        parts = HintPathBuilder().explode_number("250399").build()
        assert parts == ["200000", "250000", "250000", "250300", "250399"]

    def test_uses_integer_before_dash(self) -> None:
        parts = HintPathBuilder().explode_number("10236-1").build()
        assert parts == ["100000", "10000", "10000", "10200", "10236-1"]

    def test_non_numeric_goes_to_other(self) -> None:
        assert HintPathBuilder().explode_number("abc-1").build() == ["other", "abc-1"]


class TestExplode:
    def test_dash_routes_to_number(self) -> None:
        parts = HintPathBuilder().add("sets").explode("75192-1").build()
        assert parts == ["sets", "100000", "70000", "75000", "75100", "75192-1"]

    def test_prefixed_number_grouped_by_prefix(self) -> None:
        assert HintPathBuilder().explode("pb36").build() == ["pb", "pb36"]

    def test_unmatched_string_goes_to_other(self) -> None:
        assert HintPathBuilder().explode("36pb").build() == ["other", "36pb"]

    def test_none_adds_nothing(self) -> None:
        assert HintPathBuilder().add("x").explode(None).build() == ["x"]


class TestExplodeOnGroups:
    def test_adds_each_group(self) -> None:
        parts = (
            HintPathBuilder()
            .add("minifigures")
            .explode_on_groups("pb36a", r"^(.*[a-zA-Z]+)\d+.*$")
            .build()
        )
        assert parts == ["minifigures", "pb"]

    def test_multiple_groups(self) -> None:
        parts = HintPathBuilder().explode_on_groups("sw0001a", r"^([a-z]+)(\d+)([a-z]?)$").build()
        assert parts == ["sw", "0001", "a"]

    def test_no_match(self) -> None:
        parts = HintPathBuilder().explode_on_groups("123", r"^([a-z]+)$").build()
        assert parts == ["regex_no_match", "123"]

    def test_invalid_regex(self) -> None:
        parts = HintPathBuilder().explode_on_groups("abc", r"([a-z").build()
        assert parts == ["regex_other", "abc"]


class TestBuilder:
    def test_build_returns_copy(self) -> None:
        builder = HintPathBuilder().add("a")
        parts = builder.build()
        parts.append("b")
        assert builder.build() == ["a"]

    def test_reset(self) -> None:
        builder = HintPathBuilder().add("a").explode("pb36")
        assert builder.reset().build() == []

"""Unit tests for int-or-percent parsing in utils/resource_parser.py."""

from __future__ import annotations

import pytest

from kubemend.utils.resource_parser import parse_int_or_percent, scaled_value


class TestParseIntOrPercent:
    """Tests for parse_int_or_percent."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (2, (2, False)),
            ("2", (2, False)),
            (" 3 ", (3, False)),
            ("50%", (50, True)),
            ("0%", (0, True)),
        ],
    )
    def test_valid_values(self, value, expected) -> None:
        assert parse_int_or_percent(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "50%%", "1.5", True])
    def test_invalid_values(self, value) -> None:
        with pytest.raises(ValueError):
            parse_int_or_percent(value)


class TestScaledValue:
    """Tests for scaled_value."""

    def test_absolute_value_ignores_total(self) -> None:
        assert scaled_value(2, 10) == 2

    def test_negative_is_clamped(self) -> None:
        assert scaled_value(-1, 10) == 0

    @pytest.mark.parametrize(
        ("value", "total", "expected"),
        [("50%", 3, 2), ("50%", 4, 2), ("10%", 1, 1), ("100%", 7, 7), ("0%", 5, 0)],
    )
    def test_percent_rounds_up(self, value, total, expected) -> None:
        assert scaled_value(value, total) == expected

    def test_percent_round_down(self) -> None:
        assert scaled_value("50%", 3, round_up=False) == 1

import math

import pytest

from pgactivity import (
    ByteSize,
    Count,
    Duration,
    LabelMap,
    ParseError,
    Percentage,
    Rate,
    UsageError,
    compare,
    critical,
    is_duration,
    is_size,
    ok,
    parse_duration,
    parse_label_map,
    parse_size,
    parse_threshold,
    warn,
)
from pgactivity.threshold import parse_label_thresholds, percent_limit


class TestParseDuration:
    def test_composite(self):
        assert parse_duration("1h55m6") == 6966

    def test_whitespace_between_tokens(self):
        assert parse_duration("1h 55m 6") == 6966

    def test_bare_number_is_seconds(self):
        assert parse_duration("90") == 90

    def test_days_and_case(self):
        assert parse_duration("2D3H") == 2 * 86400 + 3 * 3600

    def test_repeated_units_add_up(self):
        assert parse_duration("1m1m") == 120

    def test_concatenation_sums(self):
        assert parse_duration("1d" + "2h") == parse_duration("1d") + parse_duration("2h")

    @pytest.mark.parametrize("value", ["", "1x", "h1", "1.5h", "1 2h", "-1s"])
    def test_malformed(self, value):
        with pytest.raises(ParseError) as excinfo:
            parse_duration(value)
        assert excinfo.value.value == value

    def test_parse_error_is_usage_error(self):
        with pytest.raises(UsageError):
            parse_duration("soon")


class TestParseSize:
    def test_gigabyte(self):
        assert parse_size("1g") == 1073741824

    @pytest.mark.parametrize(
        "unit,power",
        [("b", 0), ("k", 1), ("m", 2), ("g", 3), ("t", 4), ("p", 5), ("e", 6), ("z", 7)],
    )
    def test_units(self, unit, power):
        assert parse_size("3" + unit) == 3 * 1024**power

    def test_bare_number_is_bytes(self):
        assert parse_size("512") == 512

    def test_trailing_b_or_o(self):
        assert parse_size("2MB") == 2 * 1024**2
        assert parse_size("2ko") == 2048

    def test_percentage_uses_base_and_rounds_down(self):
        assert parse_size("10%", base=1005) == 100

    def test_percentage_without_base_is_programming_error(self):
        with pytest.raises(TypeError):
            parse_size("10%")

    @pytest.mark.parametrize("value", ["1.5g", "1,5g", "10.0", "1,000"])
    def test_fractions_rejected(self, value):
        with pytest.raises(ParseError):
            parse_size(value)

    def test_unknown_unit(self):
        with pytest.raises(ParseError):
            parse_size("10x")


class TestPredicates:
    def test_is_duration(self):
        assert is_duration("1h30m")
        assert is_duration("30")
        assert not is_duration("1.5h")
        assert not is_duration("")

    def test_is_size(self):
        assert is_size("10MB")
        assert not is_size("10%")
        assert not is_size("1.5g")


class TestLabelMap:
    allowed = {"waiting", "idle_xact", "active"}

    def test_two_labels(self):
        labels = parse_label_map("waiting=5,idle_xact=10", self.allowed)
        assert labels == {"waiting": "5", "idle_xact": "10"}

    def test_unknown_label(self):
        with pytest.raises(UsageError) as excinfo:
            parse_label_map("waiting=5,idle_xact=10,foo=1", self.allowed)
        assert excinfo.value.value == "foo"

    def test_last_duplicate_wins(self):
        assert parse_label_map("waiting=5,waiting=7", self.allowed) == {"waiting": "7"}

    def test_raw_values_are_kept(self):
        assert parse_label_map("active = 1h", self.allowed) == {"active": "1h"}

    @pytest.mark.parametrize("value", ["", "  ", "waiting", "waiting=", "=5"])
    def test_malformed(self, value):
        with pytest.raises(ParseError):
            parse_label_map(value, self.allowed)

    def test_label_thresholds(self):
        thresholds = parse_label_thresholds(
            "waiting=5,active=10%", {"waiting": (Count,), "active": (Percentage,)}
        )
        assert isinstance(thresholds, LabelMap)
        assert thresholds["waiting"] == Count(5)
        assert thresholds["active"] == Percentage(10)
        assert "idle_xact" not in thresholds

    def test_empty_label_map_is_invalid(self):
        with pytest.raises(ParseError):
            LabelMap({})


class TestParseThreshold:
    def test_count(self):
        assert parse_threshold("10", (Count, Percentage)) == Count(10)

    def test_percentage(self):
        assert parse_threshold("80%", (Count, Percentage)) == Percentage(80)

    def test_order_of_variants(self):
        assert parse_threshold("60", (Count, Duration)) == Count(60)
        assert parse_threshold("60", (Duration,)) == Duration(60)

    def test_size(self):
        assert parse_threshold("1g", (ByteSize,)) == ByteSize(1024**3)

    def test_count_rejects_fraction(self):
        with pytest.raises(ParseError):
            parse_threshold("1.5", (Count,))

    def test_rejected_variant(self):
        with pytest.raises(ParseError) as excinfo:
            parse_threshold("10%", (Count, Duration))
        assert "number or interval" in str(excinfo.value)

    def test_percentage_out_of_range(self):
        with pytest.raises(ParseError):
            parse_threshold("120%", (Percentage,))

    def test_fractional_rate(self):
        assert parse_threshold("0.5", (Rate,)) == Rate(0.5)
        assert parse_threshold("2", (Rate,)).resolve() == 2.0

    def test_rate_rejects_percentage(self):
        with pytest.raises(ParseError):
            parse_threshold("5%", (Rate,))


class TestResolve:
    def test_percentage_is_lazy(self):
        threshold = Percentage(10)
        with pytest.raises(TypeError):
            threshold.resolve()
        assert threshold.resolve(95) == 9

    def test_percentage_rounding(self):
        assert Percentage(10, rounding=math.ceil).resolve(95) == 10

    def test_scalars(self):
        assert Count(3).resolve() == 3
        assert Duration(60).resolve() == 60
        assert ByteSize(1024).resolve() == 1024

    def test_percent_limit(self):
        assert percent_limit(None) is None
        assert percent_limit(Percentage(90.5)) == 90.5
        assert percent_limit(Count(90)) == 90


class TestCompare:
    def test_critical_first(self):
        assert compare(100, 10, 50) == critical

    def test_warning(self):
        assert compare(20, 10, 50) == warn

    def test_limit_reached(self):
        assert compare(10, 10, None) == warn

    def test_ok(self):
        assert compare(5, 10, 50) == ok

    def test_reverse(self):
        assert compare(80, 95, 90, reverse=True) == critical
        assert compare(92, 95, 90, reverse=True) == warn
        assert compare(95, 95, 90, reverse=True) == ok

    def test_no_limits(self):
        assert compare(10**9, None, None) == ok

"""Tests for the datatype format, cast and serialisation rules."""

import datetime

import pytest

from pyHomie.datatypes import (
    cast_payload,
    coerce_datatype,
    enum_labels,
    normalize_format,
    range_bounds,
    serialize_value,
)
from pyHomie.enums import Datatype
from pyHomie.errors import InvalidConfiguration


# ---------------------------------------------------------------------------
# Datatype coercion
# ---------------------------------------------------------------------------

class TestCoerceDatatype:

    def test_member_passes_through(self):
        assert coerce_datatype(Datatype.FLOAT) is Datatype.FLOAT

    def test_string_value(self):
        assert coerce_datatype("color") is Datatype.COLOR

    def test_unknown_rejected(self):
        with pytest.raises(InvalidConfiguration):
            coerce_datatype("number")


# ---------------------------------------------------------------------------
# Format normalisation
# ---------------------------------------------------------------------------

class TestRangeFormat:

    def test_none_allowed(self):
        assert normalize_format(Datatype.INTEGER, None) is None

    def test_string_kept(self):
        assert normalize_format(Datatype.INTEGER, "0:100") == "0:100"

    def test_string_stripped(self):
        assert normalize_format(Datatype.FLOAT, " -1.5 : 2.5 ") == "-1.5:2.5"

    def test_tuple(self):
        assert normalize_format(Datatype.FLOAT, (0.5, 1.5)) == "0.5:1.5"

    def test_integer_range_object_is_inclusive(self):
        assert normalize_format(Datatype.INTEGER, range(1, 11)) == "1:10"

    def test_range_object_rejected_for_float(self):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.FLOAT, range(0, 10))

    def test_range_object_with_step_rejected(self):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.INTEGER, range(0, 10, 2))

    @pytest.mark.parametrize("fmt", ["0:", ":10", (None, 10), (0, None)])
    def test_half_open_rejected(self, fmt):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.INTEGER, fmt)

    def test_reversed_bounds_rejected(self):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.INTEGER, "10:0")

    def test_bool_bound_rejected(self):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.INTEGER, (False, True))

    def test_float_bound_rejected_for_integer(self):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.INTEGER, "0:1.5")

    def test_range_bounds(self):
        assert range_bounds(Datatype.INTEGER, "-5:5") == (-5, 5)
        assert range_bounds(Datatype.FLOAT, "0:1") == (0.0, 1.0)


class TestEnumFormat:

    def test_list_joined(self):
        assert normalize_format(Datatype.ENUM, ["low", "high"]) == "low,high"

    def test_string_kept(self):
        assert normalize_format(Datatype.ENUM, "a,b,c") == "a,b,c"

    def test_required(self):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.ENUM, None)

    def test_empty_label_rejected(self):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.ENUM, "a,,b")

    def test_labels(self):
        assert enum_labels("a,b") == ("a", "b")


class TestColorFormat:

    @pytest.mark.parametrize("fmt", ["rgb", "hsv"])
    def test_valid(self, fmt):
        assert normalize_format(Datatype.COLOR, fmt) == fmt

    @pytest.mark.parametrize("fmt", [None, "cmyk", "RGB"])
    def test_invalid(self, fmt):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.COLOR, fmt)


class TestPlainFormat:

    def test_string_format_allowed(self):
        assert normalize_format(Datatype.STRING, "text") == "text"

    def test_non_string_rejected(self):
        with pytest.raises(InvalidConfiguration):
            normalize_format(Datatype.BOOLEAN, 1)


# ---------------------------------------------------------------------------
# Payload casting
# ---------------------------------------------------------------------------

class TestCastBoolean:

    def test_true(self):
        assert cast_payload(Datatype.BOOLEAN, "true", None) is True

    def test_false(self):
        assert cast_payload(Datatype.BOOLEAN, "false", None) is False

    @pytest.mark.parametrize("payload", ["True", "1", "yes", ""])
    def test_other_rejected(self, payload):
        with pytest.raises(ValueError):
            cast_payload(Datatype.BOOLEAN, payload, None)


class TestCastInteger:

    def test_plain(self):
        assert cast_payload(Datatype.INTEGER, "-42", None) == -42

    def test_within_range(self):
        assert cast_payload(Datatype.INTEGER, "10", "0:10") == 10

    def test_outside_range(self):
        with pytest.raises(ValueError):
            cast_payload(Datatype.INTEGER, "11", "0:10")

    @pytest.mark.parametrize("payload", ["1.0", "+1", " 1", "abc", ""])
    def test_malformed(self, payload):
        with pytest.raises(ValueError):
            cast_payload(Datatype.INTEGER, payload, None)


class TestCastFloat:

    @pytest.mark.parametrize(
        "payload,expected",
        [("1", 1.0), ("1.", 1.0), (".5", 0.5), ("-2.5", -2.5), ("1e3", 1000.0)],
    )
    def test_accepted(self, payload, expected):
        assert cast_payload(Datatype.FLOAT, payload, None) == expected

    @pytest.mark.parametrize("payload", [".", "1e", "nan", "inf", "1,5"])
    def test_malformed(self, payload):
        with pytest.raises(ValueError):
            cast_payload(Datatype.FLOAT, payload, None)

    def test_outside_range(self):
        with pytest.raises(ValueError):
            cast_payload(Datatype.FLOAT, "5.5", "0:5")


class TestCastEnum:

    def test_label(self):
        assert cast_payload(Datatype.ENUM, "high", "low,high") == "high"

    def test_unknown_label(self):
        with pytest.raises(ValueError):
            cast_payload(Datatype.ENUM, "mid", "low,high")


class TestCastColor:

    def test_rgb(self):
        assert cast_payload(Datatype.COLOR, "255,128,0", "rgb") == (255, 128, 0)

    def test_rgb_out_of_range(self):
        with pytest.raises(ValueError):
            cast_payload(Datatype.COLOR, "256,0,0", "rgb")

    def test_hsv(self):
        assert cast_payload(Datatype.COLOR, "360,100,100", "hsv") == (360, 100, 100)

    def test_hsv_saturation_out_of_range(self):
        with pytest.raises(ValueError):
            cast_payload(Datatype.COLOR, "200,101,0", "hsv")

    def test_syntax_ok_but_out_of_range(self):
        with pytest.raises(ValueError):
            cast_payload(Datatype.COLOR, "999,0,0", "rgb")

    @pytest.mark.parametrize("payload", ["1,2", "1,2,3,4", "a,b,c", "1, 2, 3"])
    def test_malformed(self, payload):
        with pytest.raises(ValueError):
            cast_payload(Datatype.COLOR, payload, "rgb")


class TestCastTemporal:

    def test_datetime(self):
        value = cast_payload(Datatype.DATETIME, "2024-03-01T12:30:00", None)
        assert value == datetime.datetime(2024, 3, 1, 12, 30)

    def test_datetime_requires_separator(self):
        with pytest.raises(ValueError):
            cast_payload(Datatype.DATETIME, "2024-03-01", None)

    def test_duration(self):
        value = cast_payload(Datatype.DURATION, "PT1H30M", None)
        assert value == datetime.timedelta(hours=1, minutes=30)

    def test_duration_malformed(self):
        with pytest.raises(ValueError):
            cast_payload(Datatype.DURATION, "90 minutes", None)

    @pytest.mark.parametrize("payload", ["P999999999999D", "PT99999999999999999H"])
    def test_duration_out_of_range(self, payload):
        with pytest.raises(ValueError):
            cast_payload(Datatype.DURATION, payload, None)

    @pytest.mark.parametrize("payload", ["2024-02-30T00:00:00", "2024-01-01T25:00:00"])
    def test_datetime_out_of_range(self, payload):
        with pytest.raises(ValueError):
            cast_payload(Datatype.DATETIME, payload, None)

    def test_string_passes_through(self):
        assert cast_payload(Datatype.STRING, "", None) == ""


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

class TestSerialize:

    def test_boolean(self):
        assert serialize_value(Datatype.BOOLEAN, True) == "true"
        assert serialize_value(Datatype.BOOLEAN, False) == "false"

    def test_numbers(self):
        assert serialize_value(Datatype.INTEGER, 5) == "5"
        assert serialize_value(Datatype.FLOAT, 21.5) == "21.5"

    def test_color(self):
        assert serialize_value(Datatype.COLOR, (1, 2, 3)) == "1,2,3"

    def test_color_string_passes_through(self):
        assert serialize_value(Datatype.COLOR, "1,2,3") == "1,2,3"

    def test_datetime(self):
        value = datetime.datetime(2024, 3, 1, 12, 30)
        assert serialize_value(Datatype.DATETIME, value) == "2024-03-01T12:30:00"

    def test_duration(self):
        value = datetime.timedelta(hours=1, minutes=30)
        assert serialize_value(Datatype.DURATION, value) == "PT1H30M"

"""Datatype rules - format normalisation, payload casting, serialisation.

Every Homie datatype has three rules, kept in per-datatype tables so
that adding a datatype means adding one entry to each table:

* **format**: validate and normalise the ``$format`` attribute given
  at construction (or via :meth:`Property.set_format`).
* **cast**: validate an untrusted ``set`` payload and convert it to a
  Python value.  Syntax and semantic (range / label) checks are
  separate steps; a rejected payload raises :class:`ValueError`.
* **serialise**: turn a Python value back into the payload text.

Python ↔ payload mapping:

  ============  =============================  ======================
  Datatype      Python value                   payload
  ============  =============================  ======================
  ``string``    ``str``                        as is
  ``integer``   ``int``                        ``"42"``
  ``float``     ``float``                      ``"21.5"``
  ``boolean``   ``bool``                       ``"true"`` / ``"false"``
  ``enum``      ``str``                        the label
  ``color``     ``(int, int, int)``            ``"255,128,0"``
  ``datetime``  :class:`datetime.datetime`     ISO 8601 date-time
  ``duration``  :class:`datetime.timedelta`    ISO 8601 duration
  ============  =============================  ======================

Date-time and duration payloads are parsed with :mod:`isodate`
(``parse_datetime`` requires the ``T`` separator; ``parse_duration``
accepts ``PnYnMnDTnHnMnS`` and ``PnW``).
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Optional, Tuple, Union

import isodate

from pyHomie.enums import Datatype
from pyHomie.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

Number = Union[int, float]

_INTEGER_RE = re.compile(r"-?[0-9]+")
_FLOAT_RE = re.compile(
    r"-?(?:[0-9]+|[0-9]+\.|\.[0-9]+|[0-9]+\.[0-9]+)(?:[eE]-?[0-9]+)?"
)
_COLOR_RE = re.compile(r"([0-9]{1,3}),([0-9]{1,3}),([0-9]{1,3})")

#: Upper bounds for the three color components per color format.
_COLOR_LIMITS: Dict[str, Tuple[int, int, int]] = {
    "rgb": (255, 255, 255),
    "hsv": (360, 100, 100),
}


def coerce_datatype(datatype: Union[Datatype, str]) -> Datatype:
    """Return *datatype* as a :class:`Datatype` member.

    Raises
    ------
    InvalidConfiguration
        If *datatype* is not one of the Homie datatypes.
    """
    if isinstance(datatype, Datatype):
        return datatype
    try:
        return Datatype(datatype)
    except ValueError:
        raise InvalidConfiguration(
            f"Invalid Homie datatype {datatype!r}"
        ) from None


# ---------------------------------------------------------------------------
# Format rules
# ---------------------------------------------------------------------------

def _plain_format(datatype: Datatype, fmt: Any) -> Optional[str]:
    if fmt is None or isinstance(fmt, str):
        return fmt
    raise InvalidConfiguration("format must be None or a string")


def _enum_format(datatype: Datatype, fmt: Any) -> Optional[str]:
    if fmt is None:
        raise InvalidConfiguration("format is required for enums")
    if isinstance(fmt, str):
        labels = fmt.split(",")
    elif isinstance(fmt, (list, tuple)):
        labels = [str(label) for label in fmt]
    else:
        raise InvalidConfiguration(
            "enum format must be a list of labels or a comma-joined string"
        )
    if not labels or any(label == "" for label in labels):
        raise InvalidConfiguration("enum format needs non-empty labels")
    return ",".join(labels)


def _color_format(datatype: Datatype, fmt: Any) -> Optional[str]:
    if fmt is None:
        raise InvalidConfiguration("format is required for colors")
    if fmt not in _COLOR_LIMITS:
        raise InvalidConfiguration(
            "format must be either rgb or hsv for colors"
        )
    return fmt


def _parse_number(datatype: Datatype, text: str) -> Number:
    pattern = _INTEGER_RE if datatype is Datatype.INTEGER else _FLOAT_RE
    if not pattern.fullmatch(text):
        raise InvalidConfiguration(
            f"{text!r} is not a valid {datatype.value} bound"
        )
    return int(text) if datatype is Datatype.INTEGER else float(text)


def _check_bound(datatype: Datatype, bound: Any) -> Number:
    if bound is None:
        raise InvalidConfiguration(
            "half-open ranges are ambiguous; give both bounds"
        )
    # bool is a subclass of int.
    if isinstance(bound, bool) or not isinstance(bound, (int, float)):
        raise InvalidConfiguration(f"range bound {bound!r} is not a number")
    if datatype is Datatype.INTEGER and not isinstance(bound, int):
        raise InvalidConfiguration(
            f"integer range bound {bound!r} is not an integer"
        )
    return bound


def _range_format(datatype: Datatype, fmt: Any) -> Optional[str]:
    if fmt is None:
        return None

    if isinstance(fmt, str):
        parts = fmt.split(":")
        if len(parts) != 2:
            raise InvalidConfiguration(
                f"range format must be 'min:max', got {fmt!r}"
            )
        low_text, high_text = (part.strip() for part in parts)
        if not low_text or not high_text:
            raise InvalidConfiguration(
                "half-open ranges are ambiguous; give both bounds"
            )
        low = _parse_number(datatype, low_text)
        high = _parse_number(datatype, high_text)
        text = f"{low_text}:{high_text}"
    elif isinstance(fmt, range):
        if datatype is not Datatype.INTEGER:
            raise InvalidConfiguration("range objects are integer-only")
        if fmt.step != 1 or len(fmt) == 0:
            raise InvalidConfiguration(
                f"{fmt!r} must be non-empty with a step of 1"
            )
        # range() excludes its end; Homie ranges are inclusive.
        low, high = fmt.start, fmt.stop - 1
        text = f"{low}:{high}"
    elif isinstance(fmt, (tuple, list)) and len(fmt) == 2:
        low = _check_bound(datatype, fmt[0])
        high = _check_bound(datatype, fmt[1])
        text = f"{low}:{high}"
    else:
        raise InvalidConfiguration(
            f"unsupported range format {fmt!r} for {datatype.value}"
        )

    if low > high:
        raise InvalidConfiguration(f"range {text!r} is empty")
    return text


_FORMAT_RULES: Dict[Datatype, Callable[[Datatype, Any], Optional[str]]] = {
    Datatype.STRING: _plain_format,
    Datatype.INTEGER: _range_format,
    Datatype.FLOAT: _range_format,
    Datatype.BOOLEAN: _plain_format,
    Datatype.ENUM: _enum_format,
    Datatype.COLOR: _color_format,
    Datatype.DATETIME: _plain_format,
    Datatype.DURATION: _plain_format,
}


def normalize_format(datatype: Datatype, fmt: Any) -> Optional[str]:
    """Validate *fmt* for *datatype* and return its ``$format`` text.

    Raises
    ------
    InvalidConfiguration
        If the format is missing where required or illegal for the
        datatype.
    """
    return _FORMAT_RULES[datatype](datatype, fmt)


def range_bounds(datatype: Datatype, fmt: str) -> Tuple[Number, Number]:
    """Return the inclusive ``(min, max)`` bounds of a numeric format."""
    low_text, high_text = fmt.split(":")
    return (
        _parse_number(datatype, low_text.strip()),
        _parse_number(datatype, high_text.strip()),
    )


def enum_labels(fmt: str) -> Tuple[str, ...]:
    """Return the labels of an enum format."""
    return tuple(fmt.split(","))


# ---------------------------------------------------------------------------
# Payload casting
# ---------------------------------------------------------------------------

def _cast_string(payload: str, fmt: Optional[str]) -> Any:
    return payload


def _cast_boolean(payload: str, fmt: Optional[str]) -> Any:
    if payload == "true":
        return True
    if payload == "false":
        return False
    raise ValueError(f"{payload!r} is not a boolean")


def _check_range(datatype: Datatype, value: Number, fmt: Optional[str]) -> Number:
    if fmt is not None:
        low, high = range_bounds(datatype, fmt)
        if not low <= value <= high:
            raise ValueError(f"{value!r} is outside {fmt}")
    return value


def _cast_integer(payload: str, fmt: Optional[str]) -> Any:
    if not _INTEGER_RE.fullmatch(payload):
        raise ValueError(f"{payload!r} is not an integer")
    return _check_range(Datatype.INTEGER, int(payload), fmt)


def _cast_float(payload: str, fmt: Optional[str]) -> Any:
    if not _FLOAT_RE.fullmatch(payload):
        raise ValueError(f"{payload!r} is not a float")
    return _check_range(Datatype.FLOAT, float(payload), fmt)


def _cast_enum(payload: str, fmt: Optional[str]) -> Any:
    if fmt is None or payload not in enum_labels(fmt):
        raise ValueError(f"{payload!r} is not one of {fmt}")
    return payload


def _cast_color(payload: str, fmt: Optional[str]) -> Any:
    match = _COLOR_RE.fullmatch(payload)
    if match is None:
        raise ValueError(f"{payload!r} is not a color triple")
    components = tuple(int(c) for c in match.groups())
    limits = _COLOR_LIMITS.get(fmt or "")
    if limits is None:
        raise ValueError(f"unknown color format {fmt!r}")
    if any(c > limit for c, limit in zip(components, limits)):
        raise ValueError(f"{payload!r} is out of range for {fmt}")
    return components


def _cast_datetime(payload: str, fmt: Optional[str]) -> Any:
    try:
        return isodate.parse_datetime(payload)
    except (isodate.ISO8601Error, ValueError, OverflowError) as exc:
        raise ValueError(f"{payload!r} is not an ISO 8601 date-time") from exc


def _cast_duration(payload: str, fmt: Optional[str]) -> Any:
    try:
        return isodate.parse_duration(payload)
    except (isodate.ISO8601Error, ValueError, OverflowError) as exc:
        raise ValueError(f"{payload!r} is not an ISO 8601 duration") from exc



_CASTERS: Dict[Datatype, Callable[[str, Optional[str]], Any]] = {
    Datatype.STRING: _cast_string,
    Datatype.INTEGER: _cast_integer,
    Datatype.FLOAT: _cast_float,
    Datatype.BOOLEAN: _cast_boolean,
    Datatype.ENUM: _cast_enum,
    Datatype.COLOR: _cast_color,
    Datatype.DATETIME: _cast_datetime,
    Datatype.DURATION: _cast_duration,
}


def cast_payload(datatype: Datatype, payload: str, fmt: Optional[str]) -> Any:
    """Validate *payload* and convert it to a Python value.

    Raises
    ------
    ValueError
        If the payload is syntactically malformed or outside the
        declared format (``isodate.ISO8601Error`` is a subclass).
    """
    return _CASTERS[datatype](payload, fmt)


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def _serialize_text(value: Any) -> str:
    return str(value)


def _serialize_boolean(value: Any) -> str:
    if isinstance(value, str):
        return value
    return "true" if value else "false"


def _serialize_color(value: Any) -> str:
    if isinstance(value, str):
        return value
    return ",".join(str(int(c)) for c in value)


def _serialize_datetime(value: Any) -> str:
    if isinstance(value, str):
        return value
    return value.isoformat()


def _serialize_duration(value: Any) -> str:
    if isinstance(value, str):
        return value
    return isodate.duration_isoformat(value)


_SERIALIZERS: Dict[Datatype, Callable[[Any], str]] = {
    Datatype.STRING: _serialize_text,
    Datatype.INTEGER: _serialize_text,
    Datatype.FLOAT: _serialize_text,
    Datatype.BOOLEAN: _serialize_boolean,
    Datatype.ENUM: _serialize_text,
    Datatype.COLOR: _serialize_color,
    Datatype.DATETIME: _serialize_datetime,
    Datatype.DURATION: _serialize_duration,
}


def serialize_value(datatype: Datatype, value: Any) -> str:
    """Return the payload text for *value*."""
    return _SERIALIZERS[datatype](value)

"""Homie convention enumerations.

Values are the literal payloads used on the wire (``$state`` and
``$datatype`` topics), as defined by the Homie convention v4.0.0.
"""

from enum import Enum, unique


# ---------------------------------------------------------------------------
#  Device lifecycle
# ---------------------------------------------------------------------------


@unique
class DeviceState(Enum):
    """Lifecycle state announced on ``{device}/$state``."""

    INIT = "init"
    READY = "ready"
    # Never set locally; only sent by the broker as the last will.
    LOST = "lost"


# ---------------------------------------------------------------------------
#  Property datatypes
# ---------------------------------------------------------------------------


@unique
class Datatype(Enum):
    """Property payload datatypes (``$datatype``)."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    ENUM = "enum"
    COLOR = "color"
    DATETIME = "datetime"
    DURATION = "duration"

"""Common base for devices, nodes and properties.

Every Homie entity has an ``id`` (its topic level) and a human-readable
``name`` (its ``$name`` attribute).  Ids are restricted to lower-case
letters, digits and hyphens and must not start with a hyphen; use
:func:`escape_id` to derive a legal id from arbitrary text.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pyHomie.errors import InvalidIdentifier

if TYPE_CHECKING:
    from pyHomie.connection import MqttConnection
    from pyHomie.device import Device

logger = logging.getLogger(__name__)

#: Grammar of a Homie topic id.
ID_PATTERN: str = "[a-z0-9][a-z0-9-]*"

_ID_RE = re.compile(ID_PATTERN)
_INVALID_CHARS_RE = re.compile(r"[^a-z0-9-]")
_LEADING_JUNK_RE = re.compile(r"^[^a-z0-9]+")


def escape_id(text: str) -> str:
    """Derive a legal Homie id from arbitrary *text*.

    Lower-cases the text, replaces every disallowed character with
    ``-`` and strips leading characters that are not alphanumeric::

        >>> escape_id("Living Room #2")
        'living-room--2'
        >>> escape_id("--Ärger")
        'rger'
    """
    escaped = _INVALID_CHARS_RE.sub("-", text.lower())
    return _LEADING_JUNK_RE.sub("", escaped)


def is_valid_id(value: object) -> bool:
    """``True`` if *value* is a string matching :data:`ID_PATTERN`."""
    return isinstance(value, str) and _ID_RE.fullmatch(value) is not None


class Entity(ABC):
    """Base class holding the id and name of a Homie entity.

    Subclasses provide :attr:`device` and :attr:`topic`.

    Raises
    ------
    InvalidIdentifier
        If *id* does not match :data:`ID_PATTERN`.
    """

    def __init__(self, id: str, name: str) -> None:
        if not is_valid_id(id):
            raise InvalidIdentifier(f"Invalid Homie ID {id!r}")
        self._id: str = id
        self._name: str = name
        self._published: bool = False

    @property
    def id(self) -> str:
        """Topic-level identifier (read-only)."""
        return self._id

    @property
    def name(self) -> str:
        """Human-readable name; change it with :meth:`set_name`."""
        return self._name

    @property
    def published(self) -> bool:
        """``True`` while this entity's attributes are live on the broker."""
        return self._published

    @property
    @abstractmethod
    def device(self) -> Device:
        """The device this entity belongs to."""

    @property
    @abstractmethod
    def topic(self) -> str:
        """The base topic of this entity."""

    @property
    def mqtt(self) -> MqttConnection:
        """The transport owned by the device."""
        return self.device.mqtt

    async def set_name(self, name: str) -> bool:
        """Rename the entity.

        When the name changes on a published entity, ``$name`` is
        re-announced inside the device's reconfiguration window.

        Returns
        -------
        bool
            ``True`` if the new name was published.
        """
        if name == self._name:
            return False
        self._name = name
        if not self._published:
            return False

        async def announce(_prior_state: object) -> None:
            await self.mqtt.publish(
                f"{self.topic}/$name", name, retain=True, qos=1
            )

        await self.device.reconfigure(announce)
        return True

"""Property - the leaf entity of a Homie device.

A :class:`Property` carries one typed value of a node together with its
metadata (``$name``, ``$datatype``, ``$format``, ``$settable``,
``$retained``, ``$unit``).  Properties are created through
:meth:`pyHomie.node.Node.add_property`.

Settable properties
~~~~~~~~~~~~~~~~~~~

Passing a *callback* makes the property settable: it is announced with
``$settable=true`` and subscribes to ``{topic}/set``.  Inbound payloads
are validated and cast by :meth:`Property.handle_set` according to the
datatype (see :mod:`pyHomie.datatypes`).  Payloads that fail validation
are offered to the optional *validator*; if that also rejects them the
command is dropped without raising, so that malformed remote commands
never reach user code.

The callback receives the cast value, and the property itself when it
declares a second positional parameter.  It may be a plain function or
a coroutine function; a typical callback confirms the new state::

    async def on_set(value, prop):
        await hardware.apply(value)
        await prop.update_value(value)

Mutators
~~~~~~~~

:meth:`set_name`, :meth:`set_format`, :meth:`set_unit` and
:meth:`update_value` re-announce the changed attribute when the
property is already published and return ``True`` when they did.
"""

from __future__ import annotations

import inspect
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Optional,
    Tuple,
    Union,
)

from pyHomie.datatypes import (
    Number,
    cast_payload,
    coerce_datatype,
    enum_labels,
    normalize_format,
    range_bounds,
    serialize_value,
)
from pyHomie.entity import Entity
from pyHomie.enums import Datatype
from pyHomie.errors import InvalidConfiguration

if TYPE_CHECKING:
    from pyHomie.device import Device
    from pyHomie.node import Node

logger = logging.getLogger(__name__)

#: Callback invoked with an accepted command value (and optionally the
#: property).  May return an awaitable.
SetCallback = Callable[..., Union[None, Awaitable[None]]]

#: Fallback validator: returns the cast value or raises ``ValueError``.
Validator = Callable[[str], Any]


def _accepts_property(callback: Callable[..., Any]) -> bool:
    """``True`` if *callback* takes a second positional parameter."""
    try:
        params = inspect.signature(callback).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = 0
    for param in params:
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional += 1
    return positional >= 2


class Property(Entity):
    """One value of a node.

    Parameters
    ----------
    node:
        The owning :class:`~pyHomie.node.Node`.
    id:
        Topic-level id, unique within the node.
    name:
        Human-readable name.
    datatype:
        A :class:`~pyHomie.enums.Datatype` or its string value.
    value:
        Initial value.  Not allowed when *retained* is ``False``.
    format:
        Datatype-specific format (see :mod:`pyHomie.datatypes`).
        Required for ``enum`` and ``color``.
    retained:
        Whether value messages are retained by the broker.
    unit:
        Optional unit string (``$unit``).
    callback:
        Makes the property settable; called with accepted command
        values.
    validator:
        Fallback for payloads the built-in rules reject.

    Raises
    ------
    InvalidIdentifier
        If *id* is not a legal Homie id.
    InvalidConfiguration
        If the datatype, format, unit, retained flag or initial value
        is illegal.
    """

    def __init__(
        self,
        node: Node,
        id: str,
        name: str,
        datatype: Union[Datatype, str],
        value: Any = None,
        *,
        format: Any = None,
        retained: bool = True,
        unit: Optional[str] = None,
        callback: Optional[SetCallback] = None,
        validator: Optional[Validator] = None,
    ) -> None:
        datatype = coerce_datatype(datatype)
        if not isinstance(retained, bool):
            raise InvalidConfiguration("retained must be a boolean")
        normalized_format = normalize_format(datatype, format)
        if unit is not None and not isinstance(unit, str):
            raise InvalidConfiguration("unit must be None or a string")
        if value is not None and not retained:
            raise InvalidConfiguration(
                "an initial value cannot be provided for a non-retained "
                "property"
            )

        super().__init__(id, name)

        self._node: Node = node
        self._datatype: Datatype = datatype
        self._format: Optional[str] = normalized_format
        self._retained: bool = retained
        self._unit: Optional[str] = unit
        self._value: Any = value
        self._callback: Optional[SetCallback] = callback
        self._validator: Optional[Validator] = validator
        self._callback_takes_property: bool = (
            callback is not None and _accepts_property(callback)
        )

    # ---- read-only accessors -----------------------------------------

    @property
    def node(self) -> Node:
        """The owning :class:`Node`."""
        return self._node

    @property
    def device(self) -> Device:
        return self._node.device

    @property
    def topic(self) -> str:
        return f"{self._node.topic}/{self._id}"

    @property
    def full_name(self) -> str:
        """Node full name followed by the property name."""
        return f"{self._node.full_name} {self._name}"

    @property
    def datatype(self) -> Datatype:
        return self._datatype

    @property
    def format(self) -> Optional[str]:
        """Normalised ``$format`` text (``None`` when unset)."""
        return self._format

    @property
    def unit(self) -> Optional[str]:
        return self._unit

    @property
    def value(self) -> Any:
        """Cached value (always ``None`` for non-retained properties)."""
        return self._value

    @property
    def retained(self) -> bool:
        return self._retained

    @property
    def settable(self) -> bool:
        """``True`` when a callback was given."""
        return self._callback is not None

    def range(self) -> Union[Tuple[Number, Number], Tuple[str, ...]]:
        """Inclusive bounds of a numeric format, or an enum's labels.

        Raises
        ------
        ValueError
            If the datatype has no range or no format is set.
        """
        if self._format is None:
            raise ValueError(f"{self.topic} has no format")
        if self._datatype is Datatype.ENUM:
            return enum_labels(self._format)
        if self._datatype in (Datatype.INTEGER, Datatype.FLOAT):
            return range_bounds(self._datatype, self._format)
        raise ValueError(f"{self._datatype.value} properties have no range")

    # ---- mutators ----------------------------------------------------

    async def update_value(self, value: Any) -> bool:
        """Set the property's value.

        A retained property ignores a value equal to its cached value
        and caches anything else.  A non-retained property caches
        nothing and announces every assignment.  When published, a
        single value message is sent.

        Returns
        -------
        bool
            ``True`` if a value message was published.
        """
        if self._retained:
            if value == self._value:
                return False
            self._value = value
            self.device._schedule_auto_save()
        if not self._published:
            return False
        await self._publish_value(value)
        return True

    def seed(self, payload: str) -> bool:
        """Set the cached value from a stored *payload* without publishing.

        An unusable payload is logged and ignored.

        Returns
        -------
        bool
            ``True`` if the payload was cast and cached.
        """
        try:
            self._value = cast_payload(self._datatype, str(payload), self._format)
        except ValueError:
            logger.warning("Ignoring stored value %r for %s", payload, self.topic)
            return False
        return True

    async def set_format(self, format: Any) -> bool:
        """Change ``$format``; re-announced when published.

        Raises
        ------
        InvalidConfiguration
            If *format* is illegal for the datatype.
        """
        normalized = normalize_format(self._datatype, format)
        if normalized == self._format:
            return False
        self._format = normalized
        return await self._reannounce("$format", normalized)

    async def set_unit(self, unit: Optional[str]) -> bool:
        """Change ``$unit``; re-announced when published.

        Raises
        ------
        InvalidConfiguration
            If *unit* is neither ``None`` nor a string.
        """
        if unit is not None and not isinstance(unit, str):
            raise InvalidConfiguration("unit must be None or a string")
        if unit == self._unit:
            return False
        self._unit = unit
        return await self._reannounce("$unit", unit)

    async def set_name(self, name: str) -> bool:
        """Rename the property.

        ``$name`` is re-announced only when the device publishes
        property metadata.
        """
        if not self.device.metadata:
            self._name = name
            return False
        return await super().set_name(name)

    async def _reannounce(self, attribute: str, payload: Optional[str]) -> bool:
        if not self._published or not self.device.metadata:
            return False

        async def announce(_prior_state: object) -> None:
            if payload is None:
                await self.mqtt.publish(
                    f"{self.topic}/{attribute}", None, retain=True, qos=0
                )
            else:
                await self.mqtt.publish(
                    f"{self.topic}/{attribute}", payload, retain=True, qos=1
                )

        await self.device.reconfigure(announce)
        return True

    # ---- inbound commands --------------------------------------------

    def cast(self, payload: str) -> Any:
        """Validate and cast *payload*, trying the validator second.

        Raises
        ------
        ValueError
            If neither the datatype rule nor the validator accepts it.
        """
        try:
            return cast_payload(self._datatype, payload, self._format)
        except ValueError:
            if self._validator is None:
                raise
        value = self._validator(payload)
        if value is None:
            raise ValueError(f"validator rejected {payload!r}")
        return value

    async def handle_set(self, payload: str) -> bool:
        """Handle a payload received on ``{topic}/set``.

        Malformed or out-of-range payloads are dropped silently.

        Returns
        -------
        bool
            ``True`` if the callback was invoked.
        """
        if self._callback is None:
            return False
        try:
            value = self.cast(payload)
        except (ValueError, TypeError) as exc:
            logger.debug("Dropping command %r for %s: %s", payload, self.topic, exc)
            return False

        if self._callback_takes_property:
            result = self._callback(value, self)
        else:
            result = self._callback(value)
        if inspect.isawaitable(result):
            await result
        return True

    # ---- publication -------------------------------------------------

    async def publish(self) -> None:
        """Announce metadata and value; subscribe when settable.

        Idempotent.
        """
        if self._published:
            return

        mqtt = self.mqtt
        topic = self.topic
        async with mqtt.batch():
            if self.device.metadata:
                await mqtt.publish(f"{topic}/$name", self._name, retain=True, qos=1)
                await mqtt.publish(
                    f"{topic}/$datatype", self._datatype.value, retain=True, qos=1
                )
                if self._format is not None:
                    await mqtt.publish(
                        f"{topic}/$format", self._format, retain=True, qos=1
                    )
                if self.settable:
                    await mqtt.publish(
                        f"{topic}/$settable", "true", retain=True, qos=1
                    )
                if not self._retained:
                    await mqtt.publish(
                        f"{topic}/$retained", "false", retain=True, qos=1
                    )
                if self._unit is not None:
                    await mqtt.publish(f"{topic}/$unit", self._unit, retain=True, qos=1)
            if self._value is not None:
                await self._publish_value(self._value)
            await self.subscribe()

        self._published = True

    async def subscribe(self) -> None:
        """Subscribe to the command topic if the property is settable."""
        if self.settable:
            await self.mqtt.subscribe(f"{self.topic}/set")

    async def unpublish(self) -> None:
        """Clear every attribute topic this property announced."""
        if not self._published:
            return
        self._published = False

        mqtt = self.mqtt
        topic = self.topic
        if self.device.metadata:
            await mqtt.publish(f"{topic}/$name", None, retain=True, qos=0)
            await mqtt.publish(f"{topic}/$datatype", None, retain=True, qos=0)
            if self._format is not None:
                await mqtt.publish(f"{topic}/$format", None, retain=True, qos=0)
            if self.settable:
                await mqtt.publish(f"{topic}/$settable", None, retain=True, qos=0)
            if not self._retained:
                await mqtt.publish(f"{topic}/$retained", None, retain=True, qos=0)
            if self._unit is not None:
                await mqtt.publish(f"{topic}/$unit", None, retain=True, qos=0)
        if self.settable:
            await mqtt.unsubscribe(f"{topic}/set")
        if self._retained and self._value is not None:
            await mqtt.publish(topic, None, retain=True, qos=0)

    async def _publish_value(self, value: Any) -> None:
        if value is None:
            payload = None
        else:
            payload = serialize_value(self._datatype, value)
        logger.debug("Publishing %r to %s", payload, self.topic)
        await self.mqtt.publish(
            self.topic, payload, retain=self._retained, qos=1
        )

    # ---- dunder ------------------------------------------------------

    def __repr__(self) -> str:
        parts = [
            f"Property({self.topic!r}",
            f"name={self.full_name!r}",
            f"datatype={self._datatype.value!r}",
        ]
        if self._format is not None:
            parts.append(f"format={self._format!r}")
        if self._unit is not None:
            parts.append(f"unit={self._unit!r}")
        if self.settable:
            parts.append("settable=True")
        if self._retained:
            parts.append(f"value={self._value!r}")
        else:
            parts.append("retained=False")
        return ", ".join(parts) + ")"

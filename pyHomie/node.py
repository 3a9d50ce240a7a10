"""Node - a group of properties within a device.

Nodes are created with :meth:`pyHomie.device.Device.add_node`; their
properties with :meth:`Node.add_property`.  Structural changes run
inside the device's reconfiguration window, so adding or removing a
property on a published device is announced between ``$state=init``
and ``$state=ready``.

Usage example::

    node = await device.add_node("thermostat", "Thermostat", "hvac")
    await node.add_property(
        "setpoint", "Setpoint", "float",
        20.0, format="5:30", unit="°C", callback=on_setpoint,
    )
"""

from __future__ import annotations

import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterator,
    Mapping,
    Optional,
    Union,
)

from pyHomie.datatypes import serialize_value
from pyHomie.entity import Entity
from pyHomie.enums import Datatype, DeviceState
from pyHomie.errors import DuplicateIdentifier
from pyHomie.property import Property, SetCallback, Validator

if TYPE_CHECKING:
    from pyHomie.device import Device

logger = logging.getLogger(__name__)


class Node(Entity):
    """A named group of properties.

    Parameters
    ----------
    device:
        The owning :class:`~pyHomie.device.Device`.
    id:
        Topic-level id, unique within the device.
    name:
        Human-readable name (``$name``).
    type:
        Free-form node type (``$type``).
    """

    def __init__(self, device: Device, id: str, name: str, type: str) -> None:
        super().__init__(id, name)
        self._device: Device = device
        self._type: str = type
        self._properties: Dict[str, Property] = {}

    # ---- read-only accessors -----------------------------------------

    @property
    def device(self) -> Device:
        return self._device

    @property
    def topic(self) -> str:
        return f"{self._device.topic}/{self._id}"

    @property
    def type(self) -> str:
        return self._type

    @property
    def full_name(self) -> str:
        """The node name, prefixed by the device name on multi-node devices."""
        if len(self._device) == 1:
            return self._name
        return f"{self._device.name} {self._name}"

    @property
    def properties(self) -> Dict[str, Property]:
        """All properties keyed by id, in insertion order (copy)."""
        return dict(self._properties)

    def __getitem__(self, id: str) -> Property:
        return self._properties[id]

    def __contains__(self, id: object) -> bool:
        return id in self._properties

    def __iter__(self) -> Iterator[Property]:
        return iter(list(self._properties.values()))

    def __len__(self) -> int:
        return len(self._properties)

    def get(self, id: str) -> Optional[Property]:
        """Look up a property by id (``None`` if absent)."""
        return self._properties.get(id)

    # ---- property management -----------------------------------------

    async def add_property(
        self,
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
    ) -> Property:
        """Create and register a property.

        On a published device the property is announced at once and
        ``$properties`` is republished.

        Raises
        ------
        InvalidIdentifier, InvalidConfiguration
            If the property arguments are illegal.
        DuplicateIdentifier
            If a property with *id* already exists on this node.
        """
        prop = Property(
            self,
            id,
            name,
            datatype,
            value,
            format=format,
            retained=retained,
            unit=unit,
            callback=callback,
            validator=validator,
        )
        if prop.id in self._properties:
            raise DuplicateIdentifier(
                f"Property {prop.id!r} already exists on {self._id!r}"
            )
        if value is None and retained:
            self._restore_value(prop)

        async def mutation(prior_state: DeviceState) -> Property:
            self._properties[prop.id] = prop
            logger.debug("Added property %s", prop.topic)
            if prior_state is DeviceState.READY and self._published:
                await prop.publish()
                await self._publish_properties()
            return prop

        return await self._device.reconfigure(mutation)

    async def remove_property(self, id: str) -> bool:
        """Unpublish and remove a property.

        Returns ``False`` if no property with *id* exists.
        """
        prop = self._properties.get(id)
        if prop is None:
            return False

        async def mutation(_prior_state: DeviceState) -> None:
            await prop.unpublish()
            del self._properties[id]
            logger.debug("Removed property %s", prop.topic)
            if self._published:
                await self._publish_properties()

        await self._device.reconfigure(mutation)
        return True

    def _restore_value(self, prop: Property) -> None:
        payload = self._device.stored_value(self._id, prop.id)
        if payload is not None:
            prop.seed(payload)

    async def batch_update(self, values: Mapping[str, Any]) -> None:
        """Update several property values in one transport batch.

        Raises
        ------
        KeyError
            If a key is not the id of a property of this node.
        """
        async with self.mqtt.batch():
            for id, value in values.items():
                await self._properties[id].update_value(value)

    # ---- publication -------------------------------------------------

    async def publish(self) -> None:
        """Announce the node and cascade to its properties.

        ``$name`` and ``$type`` are sent once; ``$properties`` and the
        property cascade on every call since membership may change.
        """
        mqtt = self.mqtt
        async with mqtt.batch():
            if not self._published:
                await mqtt.publish(f"{self.topic}/$name", self._name, retain=True, qos=1)
                await mqtt.publish(f"{self.topic}/$type", self._type, retain=True, qos=1)
                self._published = True

            await self._publish_properties()
            for prop in self:
                await prop.publish()

    async def unpublish(self) -> None:
        """Clear the node's attribute topics and unpublish its properties."""
        if not self._published:
            return
        self._published = False

        mqtt = self.mqtt
        await mqtt.publish(f"{self.topic}/$name", None, retain=True, qos=0)
        await mqtt.publish(f"{self.topic}/$type", None, retain=True, qos=0)
        await mqtt.publish(f"{self.topic}/$properties", None, retain=True, qos=0)

        for prop in self:
            await prop.unpublish()

    async def _publish_properties(self) -> None:
        await self.mqtt.publish(
            f"{self.topic}/$properties",
            ",".join(self._properties),
            retain=True,
            qos=1,
        )

    # ---- persistence -------------------------------------------------

    def get_value_tree(self) -> Dict[str, str]:
        """Serialised values of retained properties that have one."""
        return {
            prop.id: serialize_value(prop.datatype, prop.value)
            for prop in self
            if prop.retained and prop.value is not None
        }

    # ---- dunder ------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"Node({self.topic!r}, name={self.full_name!r}, "
            f"type={self._type!r})"
        )

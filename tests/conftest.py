"""Shared fixtures: an in-memory stand-in for MqttConnection."""

import asyncio
import contextlib

import pytest

from pyHomie.device import Device


class FakeConnection:
    """Records traffic and simulates broker retention in memory.

    Implements the same coroutine interface as
    :class:`pyHomie.connection.MqttConnection`.
    """

    def __init__(self):
        self.published = []
        self.subscriptions = []
        self.unsubscriptions = []
        self.retained = {}
        self.will = None
        self.connected = False
        self.connect_count = 0
        self._batch_depth = 0
        self._batched = []
        self._reconnect_callbacks = []
        self._inbox = None
        self.yield_on_publish = False

    @property
    def is_connected(self):
        return self.connected

    @property
    def inbox(self):
        if self._inbox is None:
            self._inbox = asyncio.Queue()
        return self._inbox

    # ---- session -----------------------------------------------------

    def set_will(self, topic, payload, retain=True, qos=1):
        self.will = (topic, payload, retain, qos)

    async def connect(self):
        if self.connected:
            return
        self.connected = True
        self.connect_count += 1

    async def disconnect(self):
        self.connected = False
        self.inbox.put_nowait(None)

    # ---- publish / subscribe -----------------------------------------

    async def publish(self, topic, payload=None, *, retain=False, qos=0):
        if self.yield_on_publish:
            await asyncio.sleep(0)
        if self._batch_depth > 0:
            self._batched.append((topic, payload, retain, qos))
            return
        self._send(topic, payload, retain, qos)

    def _send(self, topic, payload, retain, qos):
        if not self.connected:
            raise ConnectionError("MQTT connection is not open")
        self.published.append((topic, payload, retain, qos))
        if retain:
            if payload is None:
                self.retained.pop(topic, None)
            else:
                self.retained[topic] = payload

    async def subscribe(self, topic, qos=1):
        self.subscriptions.append(topic)

    async def unsubscribe(self, topic, *, wait_for_ack=True):
        self.unsubscriptions.append(topic)

    @contextlib.asynccontextmanager
    async def batch(self):
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                batched, self._batched = self._batched, []
                for item in batched:
                    self._send(*item)

    # ---- inbound -----------------------------------------------------

    def on_reconnect(self, callback):
        self._reconnect_callbacks.append(callback)

    async def messages(self):
        while True:
            item = await self.inbox.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield item
            self.inbox.task_done()

    async def drain(self):
        prefixes = [
            topic[:-1] for topic in self.subscriptions if topic.endswith("#")
        ]
        return [
            (topic, payload)
            for topic, payload in self.retained.items()
            if any(topic.startswith(prefix) for prefix in prefixes)
        ]

    # ---- test helpers ------------------------------------------------

    async def deliver(self, topic, payload):
        """Feed an inbound message and wait until it has been handled."""
        self.inbox.put_nowait((topic, payload))
        await asyncio.wait_for(self.inbox.join(), timeout=1)

    def fail(self, exc):
        """Make the inbound stream raise *exc*."""
        self.inbox.put_nowait(exc)

    async def simulate_reconnect(self):
        for callback in self._reconnect_callbacks:
            await callback()

    def topics(self):
        return [item[0] for item in self.published]

    def payloads(self, topic):
        return [item[1] for item in self.published if item[0] == topic]


@pytest.fixture
def mqtt():
    return FakeConnection()


@pytest.fixture
def device(mqtt):
    return Device("dev", "Dev", mqtt=mqtt)

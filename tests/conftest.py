"""Shared fixtures: an in-memory transport standing in for a DDP client."""

import asyncio
from collections import defaultdict
from unittest.mock import MagicMock

import pytest

from rocketchat_driver.config import DriverOptions
from rocketchat_driver.connection import Session


class FakeSubscription:
    def __init__(self, topic, key, sub_id):
        self.topic = topic
        self.key = key
        self.id = sub_id
        self.ready = asyncio.get_running_loop().create_future()
        self.stop = MagicMock()


class FakeQuery:
    def __init__(self, result):
        self.result = result
        self.handlers = defaultdict(list)

    def on(self, event, handler):
        self.handlers[event].append(handler)


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.records = []
        self.queries = []

    def reactive_query(self, selector):
        if "_id" in selector:
            result = [r for r in self.records if r.get("_id") == selector["_id"]]
        else:
            result = list(self.records)
        query = FakeQuery(result)
        self.queries.append(query)
        return query

    def change(self, record_id):
        """Notify every unfiltered query that *record_id* changed."""
        for query in list(self.queries):
            for handler in query.handlers["change"]:
                handler(record_id)


class FakeTransport:
    """Records calls; ``results`` maps method name to a value, exception
    or callable of the params."""

    def __init__(self, host="localhost:3000", use_ssl=False, *, auto_connect=True):
        self.host = host
        self.use_ssl = use_ssl
        self.auto_connect = auto_connect
        self.handlers = defaultdict(list)
        self.calls = []
        self.results = {}
        self.delay = 0
        self.subscriptions = []
        self.collections = {}
        self.disconnect = MagicMock(return_value=None)
        self.login_with_password = MagicMock(side_effect=self._resolve("login"))
        self.login_with_ldap = MagicMock(side_effect=self._resolve("login"))
        self.logout = MagicMock(side_effect=self._resolve("logout"))

    def on(self, event, handler):
        self.handlers[event].append(handler)

    def fire(self, event):
        for handler in list(self.handlers[event]):
            handler()

    def connect(self):
        if self.auto_connect:
            asyncio.get_running_loop().call_soon(self.fire, "connected")

    async def apply(self, method, params):
        self.calls.append((method, params))
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)
        result = self.results.get(method)
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(*params)
        return result

    def subscribe(self, topic, key, flag):
        sub = FakeSubscription(topic, key, f"sub-{len(self.subscriptions) + 1}")
        self.subscriptions.append(sub)
        return sub

    def get_collection(self, name):
        return self.collections.setdefault(name, FakeCollection(name))

    def call_count(self, method):
        return sum(1 for m, _ in self.calls if m == method)

    def _resolve(self, method):
        async def respond(*args):
            result = self.results.get(method)
            if isinstance(result, Exception):
                raise result
            return result

        return respond


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def session(transport, clock):
    return Session(transport, DriverOptions(), clock=clock)


@pytest.fixture
def factory():
    """Transport factory remembering every transport it built."""
    built = []

    def make(host, use_ssl):
        t = FakeTransport(host, use_ssl)
        built.append(t)
        return t

    make.built = built
    return make

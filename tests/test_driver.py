"""Tests for the Driver facade: helpers built on cached and direct calls."""

import asyncio
import logging
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

import rocketchat_driver
from rocketchat_driver import Driver, DriverOptions
from rocketchat_driver._logging import logger, reset_log
from rocketchat_driver.errors import NotConnectedError
from rocketchat_driver.message import Message
from rocketchat_driver.types import ConnectionState


@pytest_asyncio.fixture
async def driver(factory, clock):
    d = Driver(factory, DriverOptions(), clock=clock)
    await d.connect()
    return d


@pytest.fixture
def transport(driver, factory):
    t = factory.built[0]
    t.results["getRoomIdByNameOrId"] = lambda name: f"{name.upper()}-ID"
    t.results["getRoomNameById"] = lambda rid: rid.lower()
    t.results["createDirectMessage"] = lambda user: {"rid": f"dm-{user}"}
    t.results["sendMessage"] = lambda message: {"_id": "m", **message}
    return t


@pytest.fixture(autouse=True)
def restore_log():
    yield
    reset_log()


class TestRooms:
    @pytest.mark.asyncio
    async def test_get_room_id_cached(self, driver, transport):
        results = await asyncio.gather(
            driver.get_room_id("general"), driver.get_room_id("general")
        )
        assert results == ["GENERAL-ID", "GENERAL-ID"]
        assert transport.call_count("getRoomIdByNameOrId") == 1

    @pytest.mark.asyncio
    async def test_get_room_name(self, driver, transport):
        assert await driver.get_room_name("ABC") == "abc"
        assert transport.calls == [("getRoomNameById", ["ABC"])]

    @pytest.mark.asyncio
    async def test_direct_message_room_id(self, driver, transport):
        assert await driver.get_direct_message_room_id("alice") == "dm-alice"
        assert await driver.get_direct_message_room_id("alice") == "dm-alice"
        assert transport.call_count("createDirectMessage") == 1

    @pytest.mark.asyncio
    async def test_join_room_resolves_id_then_joins(self, driver, transport):
        await driver.join_room("general")
        assert transport.calls == [
            ("getRoomIdByNameOrId", ["general"]),
            ("joinRoom", ["GENERAL-ID"]),
        ]

    @pytest.mark.asyncio
    async def test_join_rooms(self, driver, transport):
        await driver.join_rooms(["a", "b"])
        joined = sorted(params[0] for m, params in transport.calls if m == "joinRoom")
        assert joined == ["A-ID", "B-ID"]


class TestCallRouting:
    @pytest.mark.asyncio
    async def test_call_method_uses_cache_for_registered_methods(
        self, driver, transport
    ):
        await driver.call_method("getRoomIdByNameOrId", "general")
        await driver.call_method("getRoomIdByNameOrId", "general")
        assert transport.call_count("getRoomIdByNameOrId") == 1

    @pytest.mark.asyncio
    async def test_call_method_direct_otherwise(self, driver, transport):
        await driver.call_method("getUsersOfRoom", ["GENERAL-ID", True])
        await driver.call_method("getUsersOfRoom", ["GENERAL-ID", True])
        assert transport.calls == [("getUsersOfRoom", ["GENERAL-ID", True])] * 2

    @pytest.mark.asyncio
    async def test_async_call_bypasses_cache(self, driver, transport):
        await driver.async_call("getRoomIdByNameOrId", "general")
        await driver.async_call("getRoomIdByNameOrId", "general")
        assert transport.call_count("getRoomIdByNameOrId") == 2


class TestSend:
    @pytest.mark.asyncio
    async def test_send_by_room_id_single(self, driver, transport):
        await driver.send_message_by_room_id("hello", "R1")
        assert transport.calls == [("sendMessage", [{"msg": "hello", "rid": "R1"}])]

    @pytest.mark.asyncio
    async def test_send_by_room_id_many(self, driver, transport):
        results = await driver.send_message_by_room_id(["one", "two"], "R1")
        sent = [params[0] for _, params in transport.calls]
        assert sent == [{"msg": "one", "rid": "R1"}, {"msg": "two", "rid": "R1"}]
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_send_by_room_name(self, driver, transport):
        await driver.send_message_by_room("hi", "general")
        assert transport.calls[-1] == (
            "sendMessage",
            [{"msg": "hi", "rid": "GENERAL-ID"}],
        )

    @pytest.mark.asyncio
    async def test_send_direct_to_user(self, driver, transport):
        await driver.send_direct_to_user({"msg": "psst", "alias": "bot"}, "bob")
        assert transport.calls[-1] == (
            "sendMessage",
            [{"alias": "bot", "msg": "psst", "rid": "dm-bob"}],
        )

    @pytest.mark.asyncio
    async def test_send_prepared_message(self, driver, transport):
        message = driver.prepare_message("ready", "R9")
        assert isinstance(message, Message)
        await driver.custom_message(message)
        assert transport.calls == [("sendMessage", [{"msg": "ready", "rid": "R9"}])]

    @pytest.mark.asyncio
    async def test_send_many_needs_room(self, driver):
        with pytest.raises(TypeError):
            await driver.send_message(["a", "b"])


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager(self, factory):
        async with rocketchat_driver.connect(factory, DriverOptions()) as d:
            assert d.state == ConnectionState.CONNECTED
            transport = factory.built[0]
        assert d.state == ConnectionState.DISCONNECTED
        transport.logout.assert_called_once()

    @pytest.mark.asyncio
    async def test_connect_overrides(self, factory):
        d = rocketchat_driver.connect(factory, DriverOptions(), host="https://x.io")
        assert d.options.host == "https://x.io"

    @pytest.mark.asyncio
    async def test_events_registered_before_connect(self, factory):
        d = Driver(factory, DriverOptions())
        seen = []
        d.events.on("connected", lambda: seen.append(True))
        await d.connect()
        assert seen == [True]

    @pytest.mark.asyncio
    async def test_operations_need_connection(self, factory):
        d = Driver(factory, DriverOptions())
        with pytest.raises(NotConnectedError):
            await d.get_room_id("general")

    @pytest.mark.asyncio
    async def test_messages_flow_end_to_end(self, driver, transport):
        task = asyncio.ensure_future(driver.subscribe_to_messages())
        await asyncio.sleep(0)
        transport.subscriptions[0].ready.set_result("sub-1")
        await task
        received = []
        driver.react_to_messages(lambda *args: received.append(args))
        collection = transport.collections["stream-room-messages"]
        collection.records.append({"_id": "c1", "args": [{"rid": "R", "msg": "yo"}]})
        collection.change("c1")
        assert received == [(None, {"rid": "R", "msg": "yo"}, None)]
        await driver.disconnect()
        assert driver.state == ConnectionState.DISCONNECTED
        transport.subscriptions[0].stop.assert_called_once()


class TestUseLog:
    @pytest.mark.asyncio
    async def test_external_logger_receives_driver_logs(self, driver, transport):
        external = MagicMock(spec=logging.Logger)
        Driver.use_log(external)
        await driver.async_call("joinRoom", "R")
        external.info.assert_any_call("[%s] Calling (async): %s", "joinRoom", '["R"]')

    def test_rejects_incomplete_logger(self):
        with pytest.raises(TypeError):
            Driver.use_log(object())

    def test_reset(self):
        Driver.use_log(MagicMock(spec=logging.Logger))
        reset_log()
        assert logger.target is logging.getLogger("rocketchat_driver")

# =============================================================================
# Rocket.Chat Python Driver -- Driver
# =============================================================================
#
# Primary public API.  Composes the connection lifecycle, cached method
# calls and subscriptions, and adds room, join and send helpers for bots.
# =============================================================================

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Mapping, Sequence

from ._logging import replace_log
from .config import DriverOptions
from .connection import ConnectCallback, ConnectionManager
from .constants import (
    METHOD_DIRECT_MESSAGE,
    METHOD_JOIN_ROOM,
    METHOD_ROOM_ID,
    METHOD_ROOM_NAME,
    METHOD_SEND_MESSAGE,
)
from .events import EventEmitter
from .message import Message
from .subscriptions import MessageCallback
from .transport import Transport, TransportFactory, TransportSubscription
from .types import ConnectionState, Credentials

MessageContent = str | Sequence[str] | Mapping[str, Any] | Message


class Driver:
    """Async Rocket.Chat bot driver.

    Args:
        transport_factory: Builds a DDP transport from ``(host, use_ssl)``.
        options: Connection options.  Defaults come from the environment
            (see :meth:`DriverOptions.from_env`).
        clock: Time source for method cache expiry.

    Example::

        async with Driver(make_transport) as driver:
            await driver.login(Credentials.from_env())
            await driver.subscribe_to_messages()
            driver.react_to_messages(on_message)
            await driver.send_message_by_room("hello", "general")
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        options: DriverOptions | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.events = EventEmitter()
        self._connection = ConnectionManager(
            transport_factory, self.events, options, clock=clock
        )

    # -- Context manager ------------------------------------------------------

    async def __aenter__(self) -> Driver:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()

    # -- Properties -----------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def is_connected(self) -> bool:
        return self._connection.is_connected

    @property
    def options(self) -> DriverOptions:
        return self._connection.options

    @property
    def transport(self) -> Transport:
        return self._connection.transport

    @property
    def subscriptions(self) -> list[TransportSubscription]:
        return self._connection.session.subscriptions.subscriptions

    @property
    def messages(self) -> Any:
        return self._connection.session.subscriptions.messages

    @staticmethod
    def use_log(external: Any) -> None:
        """Send driver logging to an adapter's logger."""
        replace_log(external)

    # -- Connection -----------------------------------------------------------

    async def connect(
        self,
        options: DriverOptions | dict[str, Any] | None = None,
        callback: ConnectCallback | None = None,
        **overrides: Any,
    ) -> Transport | None:
        return await self._connection.connect(options, callback, **overrides)

    async def disconnect(self) -> None:
        await self._connection.disconnect()

    async def login(self, credentials: Credentials | None = None) -> Any:
        return await self._connection.login(credentials or Credentials.from_env())

    async def logout(self) -> Any:
        return await self._connection.logout()

    # -- Method calls ---------------------------------------------------------

    async def call_method(self, method: str, params: Any = None) -> Any:
        """Call a server method, through the cache if it has one."""
        return await self._connection.session.dispatcher.dispatch(method, params)

    async def async_call(self, method: str, params: Any = None) -> Any:
        """Call a server method directly, bypassing any cache."""
        return await self._connection.session.dispatcher.direct_call(method, params)

    async def cache_call(self, method: str, key: str) -> Any:
        """Call a cached server method with its single string argument."""
        return await self._connection.session.dispatcher.cached_call(method, key)

    # -- Subscriptions --------------------------------------------------------

    async def subscribe(self, topic: str, stream_key: str) -> TransportSubscription:
        return await self._connection.session.subscriptions.subscribe(topic, stream_key)

    def unsubscribe(self, subscription: TransportSubscription) -> None:
        self._connection.session.subscriptions.unsubscribe(subscription)

    def unsubscribe_all(self) -> None:
        self._connection.session.subscriptions.unsubscribe_all()

    async def subscribe_to_messages(self) -> TransportSubscription:
        return await self._connection.session.subscriptions.subscribe_to_messages()

    def react_to_messages(self, callback: MessageCallback) -> None:
        self._connection.session.subscriptions.react_to_messages(callback)

    # -- Rooms ----------------------------------------------------------------

    async def get_room_id(self, name: str) -> str:
        """Room id for a room name (or id)."""
        return await self.cache_call(METHOD_ROOM_ID, name)

    async def get_room_name(self, room_id: str) -> str:
        return await self.cache_call(METHOD_ROOM_NAME, room_id)

    async def get_direct_message_room_id(self, username: str) -> str:
        """Id of the DM room with *username*, created if it does not exist."""
        room = await self.cache_call(METHOD_DIRECT_MESSAGE, username)
        return room["rid"]

    async def join_room(self, room: str) -> Any:
        room_id = await self.get_room_id(room)
        return await self.async_call(METHOD_JOIN_ROOM, room_id)

    async def join_rooms(self, rooms: Sequence[str]) -> list[Any]:
        return list(await asyncio.gather(*(self.join_room(room) for room in rooms)))

    # -- Messages -------------------------------------------------------------

    @staticmethod
    def prepare_message(
        content: str | Mapping[str, Any] | Message, room_id: str | None = None
    ) -> Message:
        message = Message.from_content(content)
        if room_id:
            message.set_room_id(room_id)
        return message

    async def send_message_by_room_id(
        self, content: MessageContent, room_id: str
    ) -> list[Any]:
        """Send one or more messages to a room id.

        A list of strings sends one message per item.
        """
        if isinstance(content, (list, tuple)):
            messages = [self.prepare_message(text, room_id) for text in content]
        else:
            messages = [self.prepare_message(content, room_id)]
        return list(await asyncio.gather(*(self.send_message(m) for m in messages)))

    async def send_message_by_room(self, content: MessageContent, room: str) -> list[Any]:
        room_id = await self.get_room_id(room)
        return await self.send_message_by_room_id(content, room_id)

    async def send_direct_to_user(
        self, content: MessageContent, username: str
    ) -> list[Any]:
        room_id = await self.get_direct_message_room_id(username)
        return await self.send_message_by_room_id(content, room_id)

    async def send_message(
        self, message: MessageContent, room_id: str | None = None
    ) -> Any:
        """Send a prepared message, or address it to *room_id* first."""
        if room_id:
            return await self.send_message_by_room_id(message, room_id)
        if isinstance(message, (list, tuple)):
            raise TypeError("A room id is required to send multiple messages")
        prepared = self.prepare_message(message)  # type: ignore[arg-type]
        return await self.async_call(METHOD_SEND_MESSAGE, [prepared.to_dict()])

    async def custom_message(self, message: MessageContent) -> Any:
        """Deprecated alias of :meth:`send_message`."""
        return await self.send_message(message)

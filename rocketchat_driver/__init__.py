"""Rocket.Chat driver for Python bots.

Connects a bot to a Rocket.Chat server through a DDP transport, logs in,
streams the bot's messages and sends replies, with cached room lookups.

Usage::

    from rocketchat_driver import Credentials, connect

    async with connect(make_transport, host="https://chat.example.com") as driver:
        await driver.login(Credentials(username="bot", password="secret"))
        await driver.subscribe_to_messages()

        def on_message(err, message, meta=None):
            if err is None:
                print(message["msg"])

        driver.react_to_messages(on_message)
        await driver.send_message_by_room("hello", "general")

``make_transport(host, use_ssl)`` must return an object implementing
:class:`~rocketchat_driver.transport.Transport`.

Optional extras::

    pip install rocketchat-driver[orjson]   # faster JSON for call logging
"""

from typing import Any

from ._version import __version__
from .config import CacheConfig, DriverOptions
from .driver import Driver
from .errors import (
    CacheError,
    ConnectionTimeoutError,
    DriverError,
    MessageDispatchError,
    MessageLookupError,
    MessagePayloadError,
    NotConnectedError,
    NotSubscribedError,
)
from .events import EventEmitter
from .message import Message
from .method_cache import CacheEntry, MethodCache, MethodCacheBucket
from .transport import Transport, TransportFactory
from .types import AuthMode, ConnectionState, Credentials


def connect(
    transport_factory: TransportFactory,
    options: DriverOptions | None = None,
    **overrides: Any,
) -> Driver:
    """Create a driver for use as an async context manager.

    Keyword arguments override fields of *options* (or of the environment
    defaults), e.g. ``host``, ``use_ssl``, ``timeout``.

    Example::

        async with connect(make_transport, timeout=5.0) as driver:
            await driver.login()
    """
    base = options or DriverOptions.from_env()
    return Driver(transport_factory, base.merge(**overrides) if overrides else base)


__all__ = [
    "__version__",
    "connect",
    "Driver",
    "DriverOptions",
    "CacheConfig",
    "Credentials",
    "AuthMode",
    "ConnectionState",
    "Message",
    "EventEmitter",
    "MethodCache",
    "MethodCacheBucket",
    "CacheEntry",
    "Transport",
    "TransportFactory",
    "DriverError",
    "ConnectionTimeoutError",
    "NotConnectedError",
    "CacheError",
    "NotSubscribedError",
    "MessageDispatchError",
    "MessagePayloadError",
    "MessageLookupError",
]

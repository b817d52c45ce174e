# =============================================================================
# Rocket.Chat Python Driver -- Connection Lifecycle
# =============================================================================
#
# Opens the transport with a timeout, owns the per-connection Session and
# handles login, logout and disconnect.
# =============================================================================

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Callable

from ._logging import logger
from .config import DriverOptions
from .constants import (
    DEFAULT_USERNAME,
    EVENT_CONNECTED,
    EVENT_RECONNECTED,
    LDAP_OPTIONS,
    METHOD_DIRECT_MESSAGE,
    ROOM_METHODS,
)
from .dispatcher import CallDispatcher
from .errors import ConnectionTimeoutError, NotConnectedError
from .events import EventEmitter
from .method_cache import MethodCache
from .subscriptions import SubscriptionManager
from .transport import Transport, TransportFactory
from .types import AuthMode, ConnectionState, Credentials

# callback(error, transport)
ConnectCallback = Callable[[Exception | None, Transport | None], Any]


class Session:
    """Everything tied to one transport connection.

    Created by :meth:`ConnectionManager.connect`, closed on disconnect or
    a failed connect.  Transport listeners registered for a session
    become inert once it is closed.
    """

    def __init__(
        self,
        transport: Transport,
        options: DriverOptions,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self.options = options
        self.cache = MethodCache(transport, clock=clock)
        self.dispatcher = CallDispatcher(transport, self.cache)
        self.subscriptions = SubscriptionManager(transport)
        self.closed = False
        self._setup_method_cache()

    def _setup_method_cache(self) -> None:
        room = self.options.room_cache
        for method in ROOM_METHODS:
            self.cache.create(method, capacity=room.capacity, max_age=room.max_age)
        dm = self.options.dm_cache
        self.cache.create(
            METHOD_DIRECT_MESSAGE, capacity=dm.capacity, max_age=dm.max_age
        )

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.cache.clear()
        result = self.transport.disconnect()
        if inspect.isawaitable(result):
            await result


class ConnectionManager:
    """Connection state machine for the driver.

    Args:
        transport_factory: Builds an unconnected transport from
            ``(host, use_ssl)``.
        events: Lifecycle channel receiving ``connected`` and
            ``reconnected``.
        options: Base options; ``connect`` overrides are applied on top.
        clock: Time source handed to each session's method cache.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        events: EventEmitter,
        options: DriverOptions | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport_factory = transport_factory
        self._events = events
        self._options = options or DriverOptions.from_env()
        self._clock = clock
        self._state = ConnectionState.DISCONNECTED
        self._session: Session | None = None
        self._background_tasks: set[asyncio.Task[Any]] = set()

    # -- Properties -----------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED and self._session is not None

    @property
    def options(self) -> DriverOptions:
        return self._options

    @property
    def session(self) -> Session:
        if self._session is None or self._session.closed:
            raise NotConnectedError("Driver is not connected")
        return self._session

    @property
    def transport(self) -> Transport:
        return self.session.transport

    # -- Connect / Disconnect -------------------------------------------------

    async def connect(
        self,
        options: DriverOptions | dict[str, Any] | None = None,
        callback: ConnectCallback | None = None,
        **overrides: Any,
    ) -> Transport | None:
        """Open the transport and wait for its ``connected`` event.

        Returns the transport once connected.  Without *callback*, a
        timeout raises :class:`ConnectionTimeoutError`; with one, the
        outcome is passed as ``callback(error, transport)`` instead and
        ``None`` is returned on failure.
        """
        if self.is_connected:
            logger.debug("[connect] Already connected")
            transport = self.session.transport
            if callback:
                callback(None, transport)
            return transport

        config = self._options.merge(options, **overrides)
        self._options = config
        host = config.hostname
        logger.info(
            "[connect] Connecting host=%s use_ssl=%s timeout=%s",
            host,
            config.use_ssl,
            config.timeout,
        )
        self._set_state(ConnectionState.CONNECTING)

        transport = self._transport_factory(host, config.use_ssl)
        session = Session(transport, config, clock=self._clock)
        connected = asyncio.get_running_loop().create_future()

        def on_connected() -> None:
            if session.closed:
                if connected.cancelled():
                    logger.info("[connect] Connected after timeout, closing")
                    self._fire_task(transport.disconnect())
                return
            if not connected.done():
                logger.info("[connect] Connected")
                connected.set_result(None)
            self._events.emit(EVENT_CONNECTED)

        def on_reconnected() -> None:
            if not session.closed:
                self._events.emit(EVENT_RECONNECTED)

        transport.on(EVENT_CONNECTED, on_connected)
        transport.on(EVENT_RECONNECTED, on_reconnected)
        try:
            result = transport.connect()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error("[connect] Error: %s", exc)
            self._set_state(ConnectionState.FAILED)
            session.closed = True
            if callback:
                callback(exc, transport)
                return None
            raise

        try:
            await asyncio.wait_for(connected, timeout=config.timeout)
        except asyncio.TimeoutError:
            logger.info("[connect] Timeout (%s)", config.timeout)
            self._set_state(ConnectionState.FAILED)
            # A late "connected" from this transport is closed in on_connected.
            session.closed = True
            self._fire_task(transport.disconnect())
            err = ConnectionTimeoutError(config.timeout)
            if callback:
                callback(err, transport)
                return None
            raise err from None
        except asyncio.CancelledError:
            self._set_state(ConnectionState.DISCONNECTED)
            session.closed = True
            self._fire_task(transport.disconnect())
            raise

        self._session = session
        self._set_state(ConnectionState.CONNECTED)
        if callback:
            callback(None, transport)
        return transport

    async def disconnect(self) -> None:
        """Remove all subscriptions, log out and close the transport."""
        if self._session is None:
            return
        session = self._session
        logger.info("Unsubscribing, logging out, disconnecting")
        session.subscriptions.unsubscribe_all()
        try:
            await self.logout()
        finally:
            self._session = None
            await session.close()
            self._set_state(ConnectionState.DISCONNECTED)

    # -- Auth -----------------------------------------------------------------

    async def login(self, credentials: Credentials) -> Any:
        """Log in with a password, or over LDAP when configured."""
        transport = self.transport
        logger.info("[login] Logging in %s", credentials.user)
        if self._options.auth == AuthMode.LDAP:
            pending = transport.login_with_ldap(
                credentials.username, credentials.password, dict(LDAP_OPTIONS)
            )
        else:
            pending = transport.login_with_password(
                credentials.user or DEFAULT_USERNAME, credentials.password
            )
        try:
            return await pending
        except Exception as exc:
            logger.error("[login] Error: %s", exc)
            raise

    async def logout(self) -> Any:
        try:
            return await self.transport.logout()
        except Exception as exc:
            logger.error("[logout] Error: %s", exc)
            raise

    # -- Internal -------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if state != self._state:
            logger.debug("Connection state: %s -> %s", self._state.value, state.value)
            self._state = state

    def _fire_task(self, result: Any) -> None:
        """Schedule an awaitable with a strong reference to prevent GC."""
        if not inspect.isawaitable(result):
            return
        task = asyncio.ensure_future(result)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

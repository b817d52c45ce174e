# =============================================================================
# Rocket.Chat Python Driver -- Transport Protocol
# =============================================================================
#
# The driver orchestrates a DDP client it does not implement.  Any object
# satisfying ``Transport`` can be plugged in through a ``TransportFactory``.
# =============================================================================

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, Protocol, Sequence, runtime_checkable


@runtime_checkable
class TransportSubscription(Protocol):
    """Server-side subscription handle returned by ``Transport.subscribe``."""

    id: str
    ready: Awaitable[str]

    def stop(self) -> None: ...


@runtime_checkable
class ReactiveQuery(Protocol):
    """Live query over a collection.

    ``result`` holds the matching records at the time of the query;
    ``on("change", handler)`` calls *handler* with the changed record id.
    """

    result: Sequence[Mapping[str, Any]]

    def on(self, event: str, handler: Callable[[str], Any]) -> Any: ...


@runtime_checkable
class Collection(Protocol):
    name: str

    def reactive_query(self, selector: Mapping[str, Any]) -> ReactiveQuery: ...


@runtime_checkable
class Transport(Protocol):
    """Publish/subscribe RPC client connected to a Rocket.Chat server.

    ``connect`` starts the connection without blocking; the transport
    signals completion by calling its ``connected`` handlers and later
    ``reconnected`` after a drop.
    """

    def connect(self) -> Any: ...

    def disconnect(self) -> Any: ...

    def on(self, event: str, handler: Callable[[], Any]) -> Any: ...

    def apply(self, method: str, params: list[Any]) -> Awaitable[Any]: ...

    def subscribe(self, topic: str, key: str, flag: bool) -> TransportSubscription: ...

    def get_collection(self, name: str) -> Collection: ...

    def login_with_password(self, user: str, password: str) -> Awaitable[Any]: ...

    def login_with_ldap(
        self, username: str | None, password: str, options: Mapping[str, Any]
    ) -> Awaitable[Any]: ...

    def logout(self) -> Awaitable[Any]: ...


# (host, use_ssl) -> transport, not yet connected
TransportFactory = Callable[[str, bool], Transport]

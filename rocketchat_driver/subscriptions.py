# =============================================================================
# Rocket.Chat Python Driver -- Subscription Manager
# =============================================================================
#
# Tracks live server subscriptions and turns change notifications from the
# reactive message collection into per-message callbacks.  Dispatch is a
# two-step protocol: the change event carries only an id, and the record is
# then fetched by that id.
# =============================================================================

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Mapping

from ._logging import logger
from .constants import EVENT_CHANGE, MESSAGE_COLLECTION, MESSAGE_STREAM
from .errors import (
    MessageDispatchError,
    MessageLookupError,
    MessagePayloadError,
    NotSubscribedError,
)
from .types import SubscriptionRecord

if TYPE_CHECKING:
    from .transport import Collection, Transport, TransportSubscription

# callback(error, message, meta)
MessageCallback = Callable[..., Any]


class SubscriptionManager:
    """Active subscriptions and reactive message dispatch for one session."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._records: list[SubscriptionRecord] = []
        self._messages: Collection | None = None
        self._background_tasks: set[asyncio.Task[Any]] = set()

    @property
    def subscriptions(self) -> list[TransportSubscription]:
        return [r.subscription for r in self._records]

    @property
    def records(self) -> list[SubscriptionRecord]:
        return list(self._records)

    @property
    def messages(self) -> Collection | None:
        """Reactive message collection, bound by :meth:`subscribe_to_messages`."""
        return self._messages

    async def subscribe(self, topic: str, stream_key: str) -> TransportSubscription:
        """Open a subscription and wait until the server reports it ready.

        The subscription is tracked before it is ready, so
        :meth:`unsubscribe_all` also stops subscriptions still pending.
        """
        logger.info("[subscribe] Preparing subscription: %s: %s", topic, stream_key)
        subscription = self._transport.subscribe(topic, stream_key, True)
        self._records.append(SubscriptionRecord(topic, stream_key, subscription))
        sub_id = await subscription.ready
        logger.info("[subscribe] Stream ready: %s", sub_id)
        return subscription

    def unsubscribe(self, subscription: TransportSubscription) -> None:
        record = self._find(subscription)
        if record is None:
            return
        subscription.stop()
        self._records.remove(record)
        logger.info("[%s] Unsubscribed", record.id)

    def unsubscribe_all(self) -> None:
        for record in list(self._records):
            self.unsubscribe(record.subscription)

    async def subscribe_to_messages(self) -> TransportSubscription:
        """Subscribe to the bot's own message stream."""
        subscription = await self.subscribe(MESSAGE_COLLECTION, MESSAGE_STREAM)
        self._messages = self._transport.get_collection(MESSAGE_COLLECTION)
        return subscription

    def react_to_messages(self, callback: MessageCallback) -> None:
        """Call ``callback(None, message, meta)`` for every changed message.

        Bad records are reported as ``callback(error)`` with a
        :class:`MessageDispatchError`; nothing is raised into the
        transport's change feed.
        """
        messages = self._require_messages()
        logger.info(
            "[reactive] Listening for change events in collection %s", messages.name
        )

        def on_change(message_id: str) -> None:
            try:
                message, meta = self.fetch_changed_message(message_id)
            except MessageDispatchError as exc:
                self._invoke(callback, exc)
                return
            logger.info("[received] Message in room %s", _room_id(message))
            self._invoke(callback, None, message, meta)

        messages.reactive_query({}).on(EVENT_CHANGE, on_change)

    def fetch_changed_message(self, message_id: str) -> tuple[Any, Any]:
        """Look up a changed record by id and return ``(message, meta)``."""
        query = self._require_messages().reactive_query({"_id": message_id})
        if not query.result:
            raise MessageLookupError(message_id)
        record = query.result[0]
        if not isinstance(record, Mapping):
            raise MessagePayloadError(message_id)
        args = record.get("args")
        if not isinstance(args, (list, tuple)):
            raise MessagePayloadError(message_id)
        message = args[0] if len(args) > 0 else None
        meta = args[1] if len(args) > 1 else None
        return message, meta

    def _require_messages(self) -> Collection:
        if self._messages is None:
            raise NotSubscribedError(
                "Call subscribe_to_messages() before reacting to messages"
            )
        return self._messages

    def _find(self, subscription: Any) -> SubscriptionRecord | None:
        for record in self._records:
            if record.subscription is subscription:
                return record
        return None

    def _invoke(self, callback: MessageCallback, *args: Any) -> None:
        try:
            result = callback(*args)
            if asyncio.iscoroutine(result):
                self._fire_task(result)
        except Exception as exc:
            logger.error("[reactive] Callback error: %s", exc)

    def _fire_task(self, coro: Any) -> None:
        """Schedule a coroutine with a strong reference to prevent GC."""
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)


def _room_id(message: Any) -> Any:
    if isinstance(message, Mapping):
        return message.get("rid")
    return getattr(message, "rid", None)

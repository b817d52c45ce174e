# =============================================================================
# Rocket.Chat Python Driver -- Error Types
# =============================================================================


class DriverError(Exception):
    """Base exception for all driver errors."""


class ConnectionTimeoutError(DriverError, TimeoutError):
    """The transport did not report ``connected`` within the timeout."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Connection timed out after {timeout:g}s")


class NotConnectedError(DriverError):
    """An operation needed an open session but none exists."""


class CacheError(DriverError):
    """Cache lookup for a method that has no registered bucket."""


class NotSubscribedError(DriverError):
    """Reactive dispatch requested before subscribing to the message stream."""


class MessageDispatchError(DriverError):
    """Malformed or missing record in the reactive message collection."""


class MessagePayloadError(MessageDispatchError):
    """A changed message record carried no payload."""

    def __init__(self, message_id: str | None = None) -> None:
        self.message_id = message_id
        super().__init__("received message without payload")


class MessageLookupError(MessageDispatchError):
    """Re-querying a changed message id returned nothing."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"reactive query for id {message_id} returned no results")

# =============================================================================
# Rocket.Chat Python Driver -- Type Definitions
# =============================================================================

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .constants import ENV_PASSWORD, ENV_USER


class ConnectionState(str, Enum):
    """Driver connection lifecycle state.

    Flow: DISCONNECTED -> CONNECTING -> CONNECTED.  FAILED is reached
    only from CONNECTING when the connection timeout fires first.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class AuthMode(str, Enum):
    """Login flavour selected by ``ROCKETCHAT_AUTH``."""

    PASSWORD = "password"
    LDAP = "ldap"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Login credentials for the bot account.

    Attributes:
        username: Account username.  Preferred over *email* when both set.
        email: Account email, used when no username is given.
        password: Account password.
    """

    username: str | None = None
    email: str | None = None
    password: str = ""

    @property
    def user(self) -> str | None:
        return self.username or self.email

    @classmethod
    def from_env(cls) -> Credentials:
        return cls(
            username=os.environ.get(ENV_USER) or None,
            password=os.environ.get(ENV_PASSWORD, ""),
        )


@dataclass(frozen=True, slots=True)
class SubscriptionRecord:
    """An active transport subscription with what it was opened for."""

    topic: str
    stream_key: str
    subscription: Any

    @property
    def id(self) -> str | None:
        return getattr(self.subscription, "id", None)

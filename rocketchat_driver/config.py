# =============================================================================
# Rocket.Chat Python Driver -- Configuration
# =============================================================================

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

from .constants import (
    CONNECTION_TIMEOUT,
    DEFAULT_HOST,
    DM_ROOM_CACHE_MAX_AGE,
    DM_ROOM_CACHE_SIZE,
    ENV_AUTH,
    ENV_DM_ROOM_CACHE_MAX_AGE,
    ENV_DM_ROOM_CACHE_SIZE,
    ENV_ROOM_CACHE_MAX_AGE,
    ENV_ROOM_CACHE_SIZE,
    ENV_URL,
    ROOM_CACHE_MAX_AGE,
    ROOM_CACHE_SIZE,
)
from .types import AuthMode

_PROTOCOL_PREFIX = re.compile(r"^(\w+:)?//")


@dataclass(frozen=True, slots=True)
class CacheConfig:
    """Size and age policy for one method cache bucket.

    Attributes:
        capacity: Max entries held before least-recently-used eviction.
        max_age: Seconds an entry stays valid.  ``None`` or ``0`` disables
            expiry.
    """

    capacity: int
    max_age: float | None


@dataclass(frozen=True)
class DriverOptions:
    """Connection settings.

    Attributes:
        host: Server address, with or without ``http(s)://``.
        use_ssl: Connect over TLS.  Inferred from an ``https`` host when
            built with :meth:`from_env`.
        timeout: Seconds to wait for the transport's ``connected`` event.
        auth: Password or LDAP login.
        room_cache: Policy for room id/name lookups.
        dm_cache: Policy for direct message room lookups.
    """

    host: str = DEFAULT_HOST
    use_ssl: bool = False
    timeout: float = CONNECTION_TIMEOUT
    auth: AuthMode = AuthMode.PASSWORD
    room_cache: CacheConfig = field(
        default_factory=lambda: CacheConfig(ROOM_CACHE_SIZE, ROOM_CACHE_MAX_AGE)
    )
    dm_cache: CacheConfig = field(
        default_factory=lambda: CacheConfig(DM_ROOM_CACHE_SIZE, DM_ROOM_CACHE_MAX_AGE)
    )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DriverOptions:
        env = os.environ if environ is None else environ
        url = env.get(ENV_URL) or ""
        return cls(
            host=url or DEFAULT_HOST,
            use_ssl=url.startswith("https"),
            auth=_auth_mode(env.get(ENV_AUTH)),
            room_cache=CacheConfig(
                _env_int(env, ENV_ROOM_CACHE_SIZE, ROOM_CACHE_SIZE),
                _env_float(env, ENV_ROOM_CACHE_MAX_AGE, ROOM_CACHE_MAX_AGE),
            ),
            dm_cache=CacheConfig(
                _env_int(env, ENV_DM_ROOM_CACHE_SIZE, DM_ROOM_CACHE_SIZE),
                _env_float(env, ENV_DM_ROOM_CACHE_MAX_AGE, DM_ROOM_CACHE_MAX_AGE),
            ),
        )

    def merge(
        self, overrides: DriverOptions | Mapping[str, Any] | None = None, **kwargs: Any
    ) -> DriverOptions:
        """Return a copy with *overrides* and *kwargs* applied on top."""
        if isinstance(overrides, DriverOptions):
            return overrides.merge(**kwargs) if kwargs else overrides
        changes = dict(overrides or {})
        changes.update(kwargs)
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown driver options: {', '.join(sorted(unknown))}")
        if "auth" in changes:
            changes["auth"] = _auth_mode(changes["auth"])
        for name in ("room_cache", "dm_cache"):
            if isinstance(changes.get(name), Mapping):
                changes[name] = CacheConfig(**changes[name])
        return replace(self, **changes)

    @property
    def hostname(self) -> str:
        """Host with any protocol prefix removed."""
        return strip_protocol(self.host)


def strip_protocol(host: str) -> str:
    return _PROTOCOL_PREFIX.sub("", host, count=1)


def _auth_mode(value: Any) -> AuthMode:
    if isinstance(value, AuthMode):
        return value
    if value and str(value).lower() == AuthMode.LDAP.value:
        return AuthMode.LDAP
    return AuthMode.PASSWORD


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    return int(raw) if raw else default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    return float(raw) if raw else default

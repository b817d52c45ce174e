# =============================================================================
# Rocket.Chat Python Driver -- Call Dispatcher
# =============================================================================
#
# Single entry point for server method calls.  Methods with a registered
# cache bucket go through the cache; everything else is called directly.
# Both paths log the call and re-raise failures unchanged.
# =============================================================================

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from ._logging import logger

if TYPE_CHECKING:
    from .method_cache import MethodCache
    from .transport import Transport

try:
    import orjson

    def _json_dumps(obj: Any) -> str:
        return orjson.dumps(obj, default=str).decode()

except ImportError:

    def _json_dumps(obj: Any) -> str:
        return json.dumps(obj, separators=(",", ":"), default=str)


class CallDispatcher:
    """Routes server method calls through the cache or the transport."""

    def __init__(self, transport: Transport, cache: MethodCache) -> None:
        self._transport = transport
        self._cache = cache

    @property
    def cache(self) -> MethodCache:
        return self._cache

    async def dispatch(self, method: str, params: Any = None) -> Any:
        """Call *method*, cached if a bucket is registered for it.

        Cached methods take exactly one string argument, given either
        bare or as a one-element list.
        """
        if self._cache.has(method):
            return await self.cached_call(method, _cache_key(params))
        return await self.direct_call(method, params)

    async def direct_call(self, method: str, params: Any = None) -> Any:
        args = _normalize_params(params)
        logger.info("[%s] Calling (async): %s", method, _json_dumps(args))
        try:
            result = await self._transport.apply(method, args)
        except Exception as exc:
            logger.error("[%s] Error: %s", method, exc)
            raise
        _log_success(method, result)
        return result

    async def cached_call(self, method: str, key: str) -> Any:
        logger.info("[%s] Calling (cached): %s", method, _json_dumps(key))
        try:
            result = await self._cache.call(method, key)
        except Exception as exc:
            logger.error("[%s] Error: %s", method, exc)
            raise
        _log_success(method, result)
        return result


def _normalize_params(params: Any) -> list[Any]:
    if params is None:
        return []
    if isinstance(params, (list, tuple)):
        return list(params)
    return [params]


def _cache_key(params: Any) -> Any:
    if isinstance(params, (list, tuple)) and len(params) == 1:
        return params[0]
    return params


def _log_success(method: str, result: Any) -> None:
    if result:
        logger.debug("[%s] Success: %s", method, _json_dumps(result))
    else:
        logger.debug("[%s] Success", method)

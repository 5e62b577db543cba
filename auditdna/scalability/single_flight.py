"""In-process single-flight: concurrent callers for the same key share one in-flight load."""

import asyncio
from typing import Awaitable, Callable, Dict, Generic, Hashable, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """
    At most one load per key runs at a time; everyone asking for that key
    while it runs awaits the same future. A failed load is not remembered:
    the next caller starts a fresh one. If the caller that owns a load is
    cancelled, a waiting caller takes the load over.
    """

    def __init__(self) -> None:
        self._inflight: Dict[Hashable, "asyncio.Future[T]"] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    def forget(self, key: Hashable) -> None:
        """Callers arriving after this start a new load; the running one still completes for its waiters."""
        self._inflight.pop(key, None)

    async def do(self, key: Hashable, loader: Callable[[], Awaitable[T]]) -> T:
        while True:
            existing = self._inflight.get(key)
            if existing is None:
                break
            try:
                return await asyncio.shield(existing)
            except asyncio.CancelledError:
                # Only the owner was cancelled when the shared future itself is.
                if not existing.cancelled():
                    raise

        future: "asyncio.Future[T]" = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Retrieve so an exception nobody else awaited is not reported as unhandled.
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]

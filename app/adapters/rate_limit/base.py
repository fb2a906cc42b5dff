"""Window store interfaces.

The limiter depends on this abstraction (not the Redis implementation) so
storage failures stay contained in the adapter and tests can swap the store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WindowCheck:
    """Result of one sliding-window store round trip.

    Attributes:
        count: Attempts already inside the trailing window, excluding the
            attempt recorded by this call.
        available: False when the store could not be consulted; ``count`` is
            meaningless in that case.
    """

    count: int
    available: bool


UNAVAILABLE = WindowCheck(count=0, available=False)


class AbstractWindowStore(ABC):
    """Interface for shared sliding-window stores."""

    @abstractmethod
    async def check(
        self,
        key: str,
        *,
        window_ms: int,
        max_requests: int,
        now_ms: int,
    ) -> WindowCheck:
        """Prune, count and record one attempt for ``key`` atomically.

        Args:
            key: Namespaced store key (policy prefix plus identifier).
            window_ms: Trailing window length in milliseconds.
            max_requests: Policy ceiling, used for observability only.
            now_ms: Current time in epoch milliseconds.

        Returns:
            WindowCheck: Pre-insertion count, or an unavailable result. Never
            raises for store failures.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Return whether the store answers within the configured deadline."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying client connections."""
        raise NotImplementedError

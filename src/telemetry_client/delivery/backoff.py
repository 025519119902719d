"""Capped exponential backoff for retrying a single logical send."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import BackoffConfig


GIVE_UP = -1


@dataclass
class Backoff:
    """
    Stateful wait-time sequence with a retry limit.

    The first call to next_wait_ms() returns 0 (retry immediately), call n
    (2 <= n <= max_retries) returns min(max_backoff_ms, backoff_unit_ms * 2**(n-2)),
    and every call after that returns GIVE_UP.

    Not thread-safe: use one instance per retry lineage.
    """
    max_backoff_ms: int = 15_000
    backoff_unit_ms: int = 1_000
    max_retries: int = 10

    _num_retries: int = field(default=0, init=False)

    @classmethod
    def default(cls) -> Backoff:
        return cls()

    @classmethod
    def from_config(cls, config: BackoffConfig) -> Backoff:
        return cls(
            max_backoff_ms=config.max_backoff_ms,
            backoff_unit_ms=config.backoff_unit_ms,
            max_retries=config.max_retries,
        )

    def next_wait_ms(self) -> int:
        """Wait before the next retry in milliseconds, or GIVE_UP (-1)."""
        self._num_retries += 1
        n = self._num_retries - 1
        if n == 0:
            return 0
        if n >= self.max_retries:
            return GIVE_UP
        return min(self.max_backoff_ms, self.backoff_unit_ms * (1 << (n - 1)))

    @property
    def num_retries(self) -> int:
        return self._num_retries

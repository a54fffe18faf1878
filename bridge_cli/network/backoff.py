"""Reconnect delay policy."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from bridge_cli.config import ClientSettings


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff capped at ``max_delay_ms``.

    ``delay(n) == min(initial_delay_ms * multiplier ** n, max_delay_ms)``. With a
    non-zero ``jitter`` the result is scaled by ``uniform(1 - jitter, 1)``, so the
    cap still holds.
    """

    initial_delay_ms: float = 1000.0
    multiplier: float = 2.0
    max_delay_ms: float = 30000.0
    jitter: float = 0.0
    rng: Optional[random.Random] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.initial_delay_ms <= 0:
            raise ValueError("initial_delay_ms must be > 0")
        if self.multiplier <= 1:
            raise ValueError("multiplier must be > 1")
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")
        if not 0 <= self.jitter < 1:
            raise ValueError("jitter must be in [0, 1)")

    @classmethod
    def from_settings(cls, settings: "ClientSettings") -> "BackoffPolicy":
        return cls(
            initial_delay_ms=settings.reconnect_initial_delay_ms,
            multiplier=settings.reconnect_multiplier,
            max_delay_ms=settings.reconnect_max_delay_ms,
            jitter=settings.reconnect_jitter,
        )

    def base_delay(self, attempt: int) -> float:
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        # Compared in log space so the power is only taken below the cap.
        exponent = math.log(self.initial_delay_ms) + attempt * math.log(self.multiplier)
        if exponent >= math.log(self.max_delay_ms):
            return self.max_delay_ms
        try:
            value = self.initial_delay_ms * self.multiplier**attempt
        except OverflowError:
            value = math.exp(exponent)
        return min(value, self.max_delay_ms)

    def delay(self, attempt: int) -> float:
        """Delay in milliseconds before reconnect attempt ``attempt``."""

        base = self.base_delay(attempt)
        if not self.jitter:
            return base
        rng = self.rng or random
        return base * rng.uniform(1 - self.jitter, 1)

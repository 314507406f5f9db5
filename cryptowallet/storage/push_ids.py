"""Chronologically ordered auto ids for pushed children.

Ids are 20 characters: 8 characters of millisecond timestamp followed by 12
random characters, all drawn from an alphabet that sorts lexicographically in
the same order as its values. Ids generated within the same millisecond reuse
the previous random part incremented by one, so they still sort in creation
order.
"""

from __future__ import annotations

import random
import threading
import time
from typing import Callable, List, Optional

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class PushIdGenerator:
    def __init__(
        self,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._clock = clock or time.time
        self._rng = rng or random.SystemRandom()
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_rand: List[int] = [0] * 12

    def generate(self) -> str:
        with self._lock:
            now = int(self._clock() * 1000)
            duplicate = now == self._last_ms
            self._last_ms = now

            ts_chars = []
            for _ in range(8):
                ts_chars.append(PUSH_CHARS[now % 64])
                now //= 64
            ts_part = "".join(reversed(ts_chars))

            if not duplicate:
                self._last_rand = [self._rng.randrange(64) for _ in range(12)]
            else:
                # Increment the random part, carrying over 63s.
                i = 11
                while i >= 0 and self._last_rand[i] == 63:
                    self._last_rand[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_rand[i] += 1

            return ts_part + "".join(PUSH_CHARS[n] for n in self._last_rand)


_default_generator = PushIdGenerator()


def generate_push_id() -> str:
    """Generate a push id using the module-level generator."""
    return _default_generator.generate()

"""Exponential backoff with jitter for retried directory reads."""

import random
from dataclasses import dataclass, field


@dataclass(frozen=True)
class BackoffPolicy:
    """Delay = ``base ** attempt`` seconds plus uniform jitter in
    ``[0, max_jitter_ms)`` milliseconds.

    The jitter keeps concurrent callers that failed together from retrying
    in lockstep. Instances hold no mutable state and can be shared.

    Also usable directly as a tenacity ``wait`` strategy.
    """
    base: float = 2.0
    max_jitter_ms: int = 500
    rng: random.Random | None = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if self.base < 1:
            raise ValueError("base must be >= 1")
        if self.max_jitter_ms < 0:
            raise ValueError("max_jitter_ms must be >= 0")

    def jitter(self) -> float:
        """Random jitter in seconds."""
        if self.max_jitter_ms == 0:
            return 0.0
        source = self.rng or random
        return source.randrange(self.max_jitter_ms) / 1000

    def delay(self, attempt: int) -> float:
        """Delay in seconds before retrying after the given 1-based attempt."""
        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        return self.base ** attempt + self.jitter()

    def __call__(self, retry_state) -> float:
        return self.delay(retry_state.attempt_number)


DEFAULT_BACKOFF = BackoffPolicy()

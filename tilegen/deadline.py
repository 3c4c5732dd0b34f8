"""Cooperative per-image deadlines."""

import time
from typing import Optional

from .errors import DeadlineExceededError


class Deadline:
    """
    Wall-clock budget for processing one image.

    Pipeline stages call check() between units of work; a timeout of None
    never expires.
    """

    def __init__(self, timeout: Optional[float] = None, label: str = "image"):
        self.timeout = timeout
        self.label = label
        self.started = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    @property
    def expired(self) -> bool:
        return self.timeout is not None and self.elapsed > self.timeout

    def check(self, stage: str = "") -> None:
        if self.expired:
            where = f" during {stage}" if stage else ""
            raise DeadlineExceededError(
                f"Processing {self.label} exceeded {self.timeout:.1f}s{where}"
            )

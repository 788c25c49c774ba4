import logging
from typing import Callable, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


class Saga:
    """
    Compensation driver for a sequence of local transactions that cannot share one commit.

    Each forward step that succeeds registers how to undo itself. When a later step
    fails, compensate() runs the registered undos in registration order, retrying each
    up to `attempts` times. `reset` runs between retries (typically a session rollback).
    An undo that keeps failing is logged as critical and reported back to the caller.
    """

    def __init__(self, name: str, attempts: Optional[int] = None):
        self.name = name
        self.attempts = attempts or settings.COMPENSATION_ATTEMPTS
        self._undo: list[tuple[str, Callable[[], object], Optional[Callable[[], object]]]] = []

    def on_failure(self, label: str, undo: Callable[[], object], reset: Optional[Callable[[], object]] = None) -> None:
        self._undo.append((label, undo, reset))

    def compensate(self) -> list[str]:
        unresolved = []
        for label, undo, reset in self._undo:
            for attempt in range(1, self.attempts + 1):
                try:
                    undo()
                    logger.info("%s: compensated %s", self.name, label)
                    break
                except Exception as e:
                    logger.warning("%s: compensation %s failed (attempt %d/%d): %s",
                                   self.name, label, attempt, self.attempts, e)
                    if reset:
                        reset()
            else:
                logger.critical("%s: compensation %s exhausted; inconsistency requires operator attention",
                                self.name, label)
                unresolved.append(label)
        self._undo.clear()
        return unresolved

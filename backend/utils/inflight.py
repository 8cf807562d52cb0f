import threading
import logging
from contextlib import contextmanager
from typing import Hashable, Set

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class ActionLatch:
    """
    Busy flags for user actions. While an action for a key is in flight a
    second submission of the same key is refused; the flag clears when the
    action finishes, whether it succeeded or failed.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._busy: Set[Hashable] = set()

    def acquire(self, key: Hashable) -> bool:
        with self._lock:
            if key in self._busy:
                return False
            self._busy.add(key)
            return True

    def release(self, key: Hashable):
        with self._lock:
            self._busy.discard(key)

    def is_busy(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._busy

    @contextmanager
    def hold(self, *key):
        if not self.acquire(key):
            logger.info("Duplicate submission refused for %s", key)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This action is already being processed",
            )
        try:
            yield
        finally:
            self.release(key)


action_latch = ActionLatch()

from __future__ import annotations

import logging
from typing import Optional

from btoengine.application.ports.persistence_port import Snapshot
from btoengine.core.errors import PersistenceError

logger = logging.getLogger(__name__)


class InMemoryPersistenceGateway:
    """
    Snapshot store kept in process memory.

    Stores and hands out deep copies so callers never share objects with the
    stored state. ``fail_on_save`` makes every save raise, for failure tests.
    """

    def __init__(self, snapshot: Optional[Snapshot] = None, *, fail_on_save: bool = False):
        self._stored = snapshot.copy() if snapshot is not None else Snapshot()
        self.fail_on_save = fail_on_save
        self.save_count = 0

    def load(self) -> Snapshot:
        return self._stored.copy()

    def save(self, snapshot: Snapshot) -> None:
        if self.fail_on_save:
            logger.error("Simulated save failure")
            raise PersistenceError(message="Simulated save failure", context={"gateway": "memory"})
        self._stored = snapshot.copy()
        self.save_count += 1

    @property
    def stored(self) -> Snapshot:
        """The last saved snapshot (a copy)."""
        return self._stored.copy()

    def close(self) -> None:
        pass

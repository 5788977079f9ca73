"""
In-process whitelist backend.
"""

import threading
from typing import Set

from shared.logging import get_logger


class InMemoryWhitelistBackend:
    """Set of whitelisted authorization keys; absence means not whitelisted.

    A lock guards every read-modify-write so concurrent mutations from
    threads or event loops sharing the backend stay consistent.
    """

    def __init__(self):
        self.logger = get_logger("licensing_hook.persistence.memory")
        self._keys: Set[str] = set()
        self._lock = threading.Lock()

    async def start(self):
        self.logger.info("In-memory whitelist backend started")

    async def stop(self):
        self.logger.info("In-memory whitelist backend stopped", entries=len(self._keys))

    async def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    async def set_if_absent(self, key: str) -> bool:
        """Whitelist ``key``; False if it was already present."""
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    async def delete_if_present(self, key: str) -> bool:
        """Remove ``key``; False if it was not present."""
        with self._lock:
            if key not in self._keys:
                return False
            self._keys.discard(key)
            return True

    async def count(self) -> int:
        with self._lock:
            return len(self._keys)

    async def health_check(self) -> bool:
        return True

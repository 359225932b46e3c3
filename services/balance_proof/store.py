"""
Balance Store
=============

In-memory mapping from identity to private balance.

Last write wins. Reads observe the most recent completed write for the
same identity. Values are never logged.

Version: 1.0.0
"""

import threading

from shared.logging import get_logger
from shared.zk.exceptions import BalanceNotFoundError


logger = get_logger(__name__)


class BalanceStore:
    """Thread-safe identity -> balance map."""

    def __init__(self) -> None:
        self._balances: dict[str, int] = {}
        self._lock = threading.Lock()

    def put(self, identity: str, balance: int) -> None:
        """Create or overwrite the balance of ``identity``."""
        with self._lock:
            replaced = identity in self._balances
            self._balances[identity] = balance
        logger.debug("balance_stored", identity=identity, replaced=replaced)

    def get(self, identity: str) -> int:
        """
        Return the balance of ``identity``.

        Raises:
            BalanceNotFoundError: nothing stored for ``identity``
        """
        with self._lock:
            try:
                return self._balances[identity]
            except KeyError:
                raise BalanceNotFoundError(identity) from None

    def delete(self, identity: str) -> bool:
        with self._lock:
            return self._balances.pop(identity, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._balances.clear()

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._balances

    def __len__(self) -> int:
        with self._lock:
            return len(self._balances)

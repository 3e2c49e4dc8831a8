"""
Price table for storing the latest ProductPrice per product ID.

Written only by the Refresher, read by the HTTP handlers. A single
reader-writer lock guards the mapping: any number of readers may hold it
together, a writer holds it alone, and a waiting writer blocks new readers
so it is never starved. The writer only holds the lock for one dict
assignment; network calls always happen outside of it.

Entries are never removed. Stale-but-present is preferred over absent.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional

from bazaar.models import ProductPrice


class ReadWriteLock:
    """Writer-preferring reader-writer lock built on a condition variable."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class PriceTable:
    """Maintain a mapping of product IDs to their latest ProductPrice."""

    def __init__(self) -> None:
        self._prices: Dict[str, ProductPrice] = {}
        self._lock = ReadWriteLock()

    def put(self, product_id: str, price: ProductPrice) -> None:
        """Replace the entry for a product with an already-built price.

        Args:
            product_id: The product identifier (e.g., ``"ENCHANTED_COAL"``).
            price: The new, fully-formed price pair.
        """
        with self._lock.write():
            self._prices[product_id] = price

    def get(self, product_id: str) -> Optional[ProductPrice]:
        """Return the cached price for a product, or ``None`` if absent."""
        with self._lock.read():
            return self._prices.get(product_id)

    def snapshot(self) -> Dict[str, ProductPrice]:
        """Return a copy of the current table."""
        with self._lock.read():
            return dict(self._prices)

    @contextmanager
    def reading(self) -> Iterator[Mapping[str, ProductPrice]]:
        """Hold the read lock and expose a read-only view of the table.

        The view must not escape the ``with`` block; callers format their
        response inside it.
        """
        with self._lock.read():
            yield MappingProxyType(self._prices)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._prices)

    def __contains__(self, product_id: object) -> bool:
        with self._lock.read():
            return product_id in self._prices

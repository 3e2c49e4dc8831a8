"""Services"""

from .price_table import PriceTable, ReadWriteLock
from .refresher import Refresher, RetryPolicy, compute_call_interval

__all__ = [
    "PriceTable",
    "ReadWriteLock",
    "Refresher",
    "RetryPolicy",
    "compute_call_interval",
]

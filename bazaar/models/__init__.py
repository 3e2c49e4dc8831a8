"""Data models"""

from .price import (
    ProductPrice,
    QuickStatus,
    ProductInfo,
    ProductsResponse,
    ProductResponse,
)

__all__ = [
    "ProductPrice",
    "QuickStatus",
    "ProductInfo",
    "ProductsResponse",
    "ProductResponse",
]

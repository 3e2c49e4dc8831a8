"""
Pytest fixtures for Bazaar Price Cache tests.

Provides a stub upstream (httpx.MockTransport), a scripted fake client for
Refresher tests, and a recording sleep so pacing can be asserted without
waiting.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, List, Union

import httpx
import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bazaar.models import ProductPrice
from bazaar.services import PriceTable

API_URL = "https://api.test/skyblock/bazaar"
API_KEY = "test-key"


def products_payload(product_ids: List[str], success: bool = True) -> dict:
    return {"success": success, "productIds": product_ids}


def product_payload(buy_price: float, sell_price: float, success: bool = True) -> dict:
    return {
        "success": success,
        "product_info": {
            "product_id": "IGNORED",
            "quick_status": {
                "buyPrice": buy_price,
                "sellPrice": sell_price,
                "buyVolume": 1000,
                "sellVolume": 2000,
            },
        },
    }


class StubUpstream:
    """
    Stub bazaar API for httpx.MockTransport.

    `products` is the /products response; `prices` maps product IDs to the
    /product response, or to an httpx.Response for error cases. A list of
    responses is served in order, the last one repeating.
    """

    def __init__(self, products: Union[dict, httpx.Response], prices: Dict[str, Union[dict, httpx.Response, list]]):
        self.products = products
        self.prices = {
            key: list(value) if isinstance(value, list) else [value]
            for key, value in prices.items()
        }
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/products"):
            return self._respond(self.products)

        if path.endswith("/product"):
            product_id = request.url.params.get("productId")
            if product_id not in self.prices:
                return httpx.Response(200, json={"success": False, "cause": "unknown product"})
            queue = self.prices[product_id]
            return self._respond(queue.pop(0) if len(queue) > 1 else queue[0])

        return httpx.Response(404, text="not found")

    @staticmethod
    def _respond(outcome: Union[dict, httpx.Response]) -> httpx.Response:
        if isinstance(outcome, httpx.Response):
            # 같은 응답이 반복될 수 있으므로 매번 새 객체로
            return httpx.Response(outcome.status_code, headers=outcome.headers, content=outcome.content)
        return httpx.Response(200, content=json.dumps(outcome).encode())

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class FakeBazaarClient:
    """
    Scripted client for Refresher tests.

    Each product ID maps to a list of outcomes consumed in order; an outcome
    is a ProductPrice or an exception instance. The last outcome repeats.
    """

    def __init__(self, product_lists: List[Union[List[str], Exception]], outcomes: Dict[str, list]):
        self.product_lists = list(product_lists)
        self.outcomes = {key: list(value) for key, value in outcomes.items()}
        self.list_calls = 0
        self.calls: List[str] = []
        self.on_fetch = None
        self.closed = False

    async def fetch_product_ids(self) -> List[str]:
        self.list_calls += 1
        outcome = self.product_lists.pop(0) if len(self.product_lists) > 1 else self.product_lists[0]
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)

    async def fetch_product_price(self, product_id: str) -> ProductPrice:
        self.calls.append(product_id)
        if self.on_fetch is not None:
            self.on_fetch(product_id)
        queue = self.outcomes[product_id]
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self):
        self.closed = True


class RecordingSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.calls: List[float] = []
        self.hooks = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        for hook in self.hooks:
            hook(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def price_table() -> PriceTable:
    return PriceTable()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()

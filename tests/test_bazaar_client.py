"""
BazaarClient 테스트 (httpx.MockTransport 스텁 업스트림)
"""

import httpx
import pytest

from bazaar.clients import (
    BazaarClient,
    UpstreamTransportError,
    UpstreamStatusError,
    UpstreamPayloadError,
    UpstreamFailureError,
)
from bazaar.models import ProductPrice

from conftest import API_KEY, API_URL, StubUpstream, product_payload, products_payload


def make_client(upstream) -> BazaarClient:
    transport = upstream.transport() if isinstance(upstream, StubUpstream) else httpx.MockTransport(upstream)
    return BazaarClient(api_key=API_KEY, base_url=API_URL, timeout=1.0, transport=transport)


@pytest.mark.asyncio
async def test_fetch_product_ids():
    upstream = StubUpstream(products_payload(["ENCHANTED_COAL", "WHEAT"]), {})

    async with make_client(upstream) as client:
        product_ids = await client.fetch_product_ids()

    assert product_ids == ["ENCHANTED_COAL", "WHEAT"]

    request = upstream.requests[0]
    assert request.url.path == "/skyblock/bazaar/products"
    assert request.url.params["key"] == API_KEY


@pytest.mark.asyncio
async def test_fetch_product_price():
    upstream = StubUpstream(products_payload([]), {"ENCHANTED_COAL": product_payload(12.5, 11.25)})

    async with make_client(upstream) as client:
        price = await client.fetch_product_price("ENCHANTED_COAL")

    assert price == ProductPrice(buy_price=12.5, sell_price=11.25)

    request = upstream.requests[0]
    assert request.url.path == "/skyblock/bazaar/product"
    assert request.url.params["key"] == API_KEY
    assert request.url.params["productId"] == "ENCHANTED_COAL"


@pytest.mark.asyncio
async def test_non_200_status_is_status_error():
    upstream = StubUpstream(httpx.Response(503, text="maintenance"), {})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamStatusError) as exc_info:
            await client.fetch_product_ids()

    assert exc_info.value.status_code == 503
    assert "503" in str(exc_info.value)


@pytest.mark.asyncio
async def test_status_error_names_the_product():
    upstream = StubUpstream(products_payload([]), {"WHEAT": httpx.Response(429, text="slow down")})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamStatusError) as exc_info:
            await client.fetch_product_price("WHEAT")

    assert exc_info.value.product_id == "WHEAT"
    assert exc_info.value.operation == "fetch_product"
    assert "WHEAT" in str(exc_info.value)


@pytest.mark.asyncio
async def test_invalid_json_is_payload_error():
    upstream = StubUpstream(products_payload([]), {"WHEAT": httpx.Response(200, text="<html>oops</html>")})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamPayloadError) as exc_info:
            await client.fetch_product_price("WHEAT")

    assert not isinstance(exc_info.value, UpstreamFailureError)


@pytest.mark.asyncio
async def test_unexpected_shape_is_payload_error():
    upstream = StubUpstream(
        products_payload([]),
        {"WHEAT": {"success": True, "product_info": {"quick_status": {"buyPrice": "n/a"}}}}
    )

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamPayloadError):
            await client.fetch_product_price("WHEAT")


@pytest.mark.asyncio
async def test_missing_product_info_is_payload_error():
    upstream = StubUpstream(products_payload([]), {"WHEAT": {"success": True}})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamPayloadError):
            await client.fetch_product_price("WHEAT")


@pytest.mark.asyncio
async def test_product_list_with_wrong_type_is_payload_error():
    upstream = StubUpstream(httpx.Response(200, json=["ENCHANTED_COAL"]), {})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamPayloadError):
            await client.fetch_product_ids()


@pytest.mark.asyncio
async def test_success_false_is_failure_error():
    upstream = StubUpstream(products_payload([], success=False), {"WHEAT": product_payload(1, 2, success=False)})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamFailureError):
            await client.fetch_product_ids()
        with pytest.raises(UpstreamFailureError):
            await client.fetch_product_price("WHEAT")


@pytest.mark.parametrize("body", [
    '{"success": true, "product_info": {"quick_status": {"buyPrice": NaN, "sellPrice": Infinity}}}',
    '{"success": true, "product_info": {"quick_status": {"buyPrice": 12.5, "sellPrice": -Infinity}}}',
    '{"success": true, "product_info": {"quick_status": {"buyPrice": 1e999, "sellPrice": 11.25}}}',
])
@pytest.mark.asyncio
async def test_non_finite_price_is_payload_error(body):
    upstream = StubUpstream(products_payload([]), {"WHEAT": httpx.Response(200, text=body)})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamPayloadError):
            await client.fetch_product_price("WHEAT")


@pytest.mark.parametrize("payload", [
    {"success": True, "product_info": {"quick_status": {"buyPrice": "12.5", "sellPrice": "11.25"}}},
    {"success": "true", "product_info": {"quick_status": {"buyPrice": 12.5, "sellPrice": 11.25}}},
    {"success": True, "product_info": {"quick_status": {"buyPrice": True, "sellPrice": 11.25}}},
])
@pytest.mark.asyncio
async def test_loosely_typed_price_is_payload_error(payload):
    """문자열 숫자나 문자열 bool은 변환하지 않고 거부"""
    upstream = StubUpstream(products_payload([]), {"WHEAT": payload})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamPayloadError):
            await client.fetch_product_price("WHEAT")


@pytest.mark.asyncio
async def test_integer_prices_are_accepted():
    upstream = StubUpstream(products_payload([]), {"WHEAT": product_payload(3, 2)})

    async with make_client(upstream) as client:
        price = await client.fetch_product_price("WHEAT")

    assert price == ProductPrice(buy_price=3.0, sell_price=2.0)


@pytest.mark.parametrize("payload", [
    {"success": True},
    {"success": True, "productIds": None},
    {"success": True, "productIds": ["ENCHANTED_COAL", 42]},
])
@pytest.mark.asyncio
async def test_malformed_product_list_is_payload_error(payload):
    upstream = StubUpstream(payload, {})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamPayloadError) as exc_info:
            await client.fetch_product_ids()

    assert not isinstance(exc_info.value, UpstreamFailureError)


@pytest.mark.asyncio
async def test_product_list_failure_without_ids_is_failure_error():
    upstream = StubUpstream({"success": False, "cause": "Invalid API key"}, {})

    async with make_client(upstream) as client:
        with pytest.raises(UpstreamFailureError):
            await client.fetch_product_ids()


@pytest.mark.asyncio
async def test_timeout_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    async with make_client(handler) as client:
        with pytest.raises(UpstreamTransportError) as exc_info:
            await client.fetch_product_price("WHEAT")

    assert "timed out" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, httpx.TimeoutException)


@pytest.mark.asyncio
async def test_connect_error_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("name resolution failed", request=request)

    async with make_client(handler) as client:
        with pytest.raises(UpstreamTransportError):
            await client.fetch_product_ids()


@pytest.mark.asyncio
async def test_client_uses_bounded_timeout():
    client = BazaarClient(api_key=API_KEY, base_url=API_URL, timeout=2.5)
    try:
        assert client.client.timeout.read == 2.5
        assert client.client.timeout.connect == 2.5
    finally:
        await client.close()

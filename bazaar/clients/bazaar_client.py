"""
Bazaar REST API Client

SkyBlock bazaar API에서 상품 목록과 상품별 시세를 조회합니다.

Features:
- 모든 호출에 타임아웃 적용 (업스트림 hang 시 폴링 사이클 정지 방지)
- 실패 유형별 예외 분류 (전송/상태 코드/페이로드/success=false)
- 재시도는 호출자(Refresher)의 정책에 맡김
"""

import httpx
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from bazaar.clients.exceptions import (
    UpstreamTransportError,
    UpstreamStatusError,
    UpstreamPayloadError,
    UpstreamFailureError,
)
from bazaar.core.config import settings
from bazaar.models import ProductPrice, ProductsResponse, ProductResponse

logger = logging.getLogger(__name__)


def _reject_json_constant(name: str):
    """json 모듈이 허용하는 NaN, Infinity, -Infinity 거부"""
    raise ValueError(f"non-standard JSON constant: {name}")


class BazaarClient:
    """Bazaar REST API 클라이언트"""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = base_url or settings.BAZAAR_API_URL
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport
        )

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()

    async def __aenter__(self) -> "BazaarClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_json(
        self,
        path: str,
        operation: str,
        params: Optional[Dict[str, str]] = None,
        product_id: Optional[str] = None
    ) -> Any:
        """
        GET 요청 후 JSON 본문 반환

        Raises:
            UpstreamTransportError: 네트워크/타임아웃 오류
            UpstreamStatusError: 200이 아닌 상태 코드
            UpstreamPayloadError: JSON 디코딩 실패
        """
        query = {"key": self.api_key}
        if params:
            query.update(params)

        try:
            response = await self.client.get(path, params=query)
        except httpx.TimeoutException as e:
            raise UpstreamTransportError(
                operation, f"timed out after {self.timeout}s ({type(e).__name__})", product_id=product_id
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamTransportError(
                operation, f"{type(e).__name__}: {e}", product_id=product_id
            ) from e

        if response.status_code != 200:
            raise UpstreamStatusError(operation, response.status_code, product_id=product_id)

        try:
            return response.json(parse_constant=_reject_json_constant)
        except ValueError as e:
            raise UpstreamPayloadError(operation, f"invalid JSON: {e}", product_id=product_id) from e

    async def fetch_product_ids(self) -> List[str]:
        """
        전체 상품 ID 목록 조회

        Returns:
            상품 ID 리스트 (API 응답 순서 유지)

        Raises:
            BazaarAPIError: 조회 실패 (하위 예외로 원인 구분)
        """
        operation = "fetch_products"
        data = await self._get_json("/products", operation)

        try:
            payload = ProductsResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamPayloadError(
                operation, f"unexpected payload: {e.error_count()} validation error(s)"
            ) from e

        if not payload.success:
            raise UpstreamFailureError(operation)

        if payload.product_ids is None:
            raise UpstreamPayloadError(operation, "productIds missing")

        logger.debug(f"상품 목록 수신: {len(payload.product_ids)}개")
        return payload.product_ids

    async def fetch_product_price(self, product_id: str) -> ProductPrice:
        """
        단일 상품 시세 조회

        Args:
            product_id: 상품 ID (예: 'ENCHANTED_COAL')

        Returns:
            ProductPrice (buyPrice/sellPrice)

        Raises:
            BazaarAPIError: 조회 실패 (하위 예외로 원인 구분)
        """
        operation = "fetch_product"
        data = await self._get_json(
            "/product", operation, params={"productId": product_id}, product_id=product_id
        )

        try:
            payload = ProductResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamPayloadError(
                operation,
                f"unexpected payload: {e.error_count()} validation error(s)",
                product_id=product_id
            ) from e

        if not payload.success:
            raise UpstreamFailureError(operation, product_id=product_id)

        if payload.product_info is None:
            raise UpstreamPayloadError(operation, "product_info missing", product_id=product_id)

        return payload.to_price()

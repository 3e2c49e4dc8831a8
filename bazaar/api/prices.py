"""
가격 조회 API 엔드포인트

/buy/{id}, /sell/{id}: 캐시된 가격을 소수점 둘째 자리까지 plain text로 반환
/csv: 캐시 전체를 'id,buy,sell' 형식으로 한 줄씩 반환

- /buy: 지금 바로 구매할 수 있는 가격 (업스트림 sellPrice)
- /sell: 지금 바로 판매할 수 있는 가격 (업스트림 buyPrice)

핸들러는 응답 본문을 만드는 동안만 읽기 락을 잡고, 네트워크 I/O나 쓰기는 하지 않습니다.
"""

import logging
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from bazaar.api.dependencies import get_price_table
from bazaar.models import ProductPrice
from bazaar.services import PriceTable

logger = logging.getLogger(__name__)

router = APIRouter(tags=["prices"])

INVALID_PRODUCT_ID = "invalid product ID"
PRICE_NOT_CACHED = "invalid product ID or price not in cache"


def format_price(value: float) -> str:
    return f"{value:.2f}"


def extract_product_id(product_path: str) -> str:
    """경로의 마지막 세그먼트 (끝의 '/'는 무시)"""
    return product_path.rstrip("/").rsplit("/", 1)[-1]


def _price_response(
    product_path: str,
    price_table: PriceTable,
    side: Callable[[ProductPrice], float]
) -> PlainTextResponse:
    product_id = extract_product_id(product_path)
    if not product_id:
        raise HTTPException(status_code=400, detail=INVALID_PRODUCT_ID)

    with price_table.reading() as prices:
        price = prices.get(product_id)
        if price is None:
            logger.debug(f"캐시에 없는 상품 조회: {product_id}")
            raise HTTPException(status_code=404, detail=PRICE_NOT_CACHED)
        body = format_price(side(price))

    return PlainTextResponse(body)


@router.get("/buy", response_class=PlainTextResponse)
@router.get("/sell", response_class=PlainTextResponse)
def missing_product_id():
    """상품 ID 없는 요청"""
    raise HTTPException(status_code=400, detail=INVALID_PRODUCT_ID)


@router.get("/buy/{product_path:path}", response_class=PlainTextResponse)
def get_buy_price(
    product_path: str,
    price_table: PriceTable = Depends(get_price_table)
):
    """
    즉시 구매 가격 조회

    Example:
        GET /buy/ENCHANTED_COAL → 11.25
    """
    return _price_response(product_path, price_table, lambda price: price.instant_buy)


@router.get("/sell/{product_path:path}", response_class=PlainTextResponse)
def get_sell_price(
    product_path: str,
    price_table: PriceTable = Depends(get_price_table)
):
    """
    즉시 판매 가격 조회

    Example:
        GET /sell/ENCHANTED_COAL → 12.50
    """
    return _price_response(product_path, price_table, lambda price: price.instant_sell)


@router.get("/csv", response_class=PlainTextResponse)
def dump_csv(price_table: PriceTable = Depends(get_price_table)):
    """
    캐시 전체 덤프 (한 줄에 한 상품, 순서 보장 없음)

    Example:
        GET /csv → ENCHANTED_COAL,11.25,12.50\\n
    """
    with price_table.reading() as prices:
        body = "".join(
            f"{product_id},{format_price(price.instant_buy)},{format_price(price.instant_sell)}\n"
            for product_id, price in prices.items()
        )

    return PlainTextResponse(body)

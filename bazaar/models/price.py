"""
가격 관련 데이터 모델

ProductPrice (캐시 엔트리) 및 Bazaar API 응답 모델을 정의합니다.
"""

from pydantic import BaseModel, Field, StrictBool, StrictStr
from typing import List, Optional


class ProductPrice(BaseModel):
    """
    상품 1개의 시세 (불변)

    buy_price / sell_price는 업스트림 quick_status 필드 그대로입니다.
    - buyPrice: 매수 주문 가격 → 즉시 판매 시 받는 가격
    - sellPrice: 매도 주문 가격 → 즉시 구매 시 지불하는 가격
    """

    buy_price: float = Field(..., description="업스트림 buyPrice")
    sell_price: float = Field(..., description="업스트림 sellPrice")

    @property
    def instant_buy(self) -> float:
        """지금 바로 구매할 수 있는 가격 (/buy 응답)"""
        return self.sell_price

    @property
    def instant_sell(self) -> float:
        """지금 바로 판매할 수 있는 가격 (/sell 응답)"""
        return self.buy_price

    class Config:
        frozen = True


class QuickStatus(BaseModel):
    """product_info.quick_status"""

    # 문자열 숫자, NaN/Infinity 거부
    buy_price: float = Field(..., alias="buyPrice", strict=True, allow_inf_nan=False)
    sell_price: float = Field(..., alias="sellPrice", strict=True, allow_inf_nan=False)


class ProductInfo(BaseModel):
    quick_status: QuickStatus


class ProductsResponse(BaseModel):
    """GET /products 응답 (success=false이면 productIds 없음)"""

    success: StrictBool
    product_ids: Optional[List[StrictStr]] = Field(None, alias="productIds")


class ProductResponse(BaseModel):
    """GET /product 응답 (success=false이면 product_info 없음)"""

    success: StrictBool
    product_info: Optional[ProductInfo] = None

    def to_price(self) -> ProductPrice:
        status = self.product_info.quick_status
        return ProductPrice(buy_price=status.buy_price, sell_price=status.sell_price)

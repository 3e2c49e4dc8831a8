"""
API 의존성 주입 (Dependency Injection)

앱 생성 시 app.state에 등록한 PriceTable/Refresher를 핸들러에 주입합니다.
"""

from typing import Optional

from fastapi import Request

from bazaar.services import PriceTable, Refresher


def get_price_table(request: Request) -> PriceTable:
    """
    PriceTable 의존성 주입

    Returns:
        PriceTable: Refresher와 공유하는 가격표
    """
    return request.app.state.price_table


def get_refresher(request: Request) -> Optional[Refresher]:
    """Refresher 의존성 주입 (서빙 전용 모드에서는 None)"""
    return request.app.state.refresher

"""
Bazaar Price Cache

SkyBlock bazaar API를 주기적으로 폴링하여 상품별 최신 매수/매도 가격을
메모리에 캐싱하고, 최소한의 HTTP 인터페이스로 제공하는 서비스입니다.

Architecture:
- Refresher: 상품 목록 1회 조회 → 상품별 가격 순차 조회 (분당 호출 제한 준수)
- PriceTable: reader-writer lock으로 보호되는 인메모리 가격표
- FastAPI: /buy/{id}, /sell/{id}, /csv
"""

__version__ = "1.0.0"

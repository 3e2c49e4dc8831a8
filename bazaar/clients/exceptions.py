"""
Bazaar API 예외 계층

- 전송 오류 (DNS/연결/타임아웃), 상태 코드 오류: 재시도 가능
- 페이로드 오류 (잘못된 JSON/구조), success=false: 정책에 따라 재시도 또는 치명적
"""

from typing import Optional


class BazaarAPIError(Exception):
    """Base exception for Bazaar API errors."""

    def __init__(self, operation: str, message: str, product_id: Optional[str] = None):
        self.operation = operation
        self.product_id = product_id
        target = f"{operation}({product_id})" if product_id else operation
        super().__init__(f"{target}: {message}")


class UpstreamTransportError(BazaarAPIError):
    """DNS, 연결, 타임아웃 등 네트워크 오류"""
    pass


class UpstreamStatusError(BazaarAPIError):
    """API responded with non 200 status code"""

    def __init__(self, operation: str, status_code: int, product_id: Optional[str] = None):
        self.status_code = status_code
        super().__init__(
            operation,
            f"api responded with non 200 status code: {status_code}",
            product_id=product_id
        )


class UpstreamPayloadError(BazaarAPIError):
    """응답 본문 JSON 파싱/구조 검증 실패"""
    pass


class UpstreamFailureError(UpstreamPayloadError):
    """API responded with success=false"""

    def __init__(self, operation: str, product_id: Optional[str] = None):
        super().__init__(operation, "api responded with bad status", product_id=product_id)


class RefreshAborted(Exception):
    """재시도 정책에 따라 Refresher가 중단됨 (프로세스 종료 대상)"""

    def __init__(self, product_id: str, cause: BazaarAPIError):
        self.product_id = product_id
        self.cause = cause
        super().__init__(f"refresh aborted on {product_id}: {cause}")

"""
환경 설정 관리

Pydantic Settings를 사용하여 .env 파일 및 환경 변수에서 설정을 로드합니다.
API 키는 설정이 아닌 명령행 인자로 전달받습니다 (bazaar.main 참고).
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path

# 프로젝트 루트 디렉토리 경로
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 기본 설정
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # HTTP 서버
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Bazaar API
    BAZAAR_API_URL: str = "https://api.hypixel.net/skyblock/bazaar"
    REQUEST_TIMEOUT: float = 10.0  # 초 (업스트림 hang 방지)

    # 폴링 설정
    MAX_CALLS_PER_MINUTE: int = 120  # API 제한: 분당 120건
    CALL_SAFETY_MARGIN: int = 5  # 제한보다 5건 여유
    REFRESH_COOLDOWN: float = 120.0  # 전체 사이클 완료 후 대기 (초)
    RELIST_EVERY_PASSES: int = 1000  # N 사이클마다 상품 목록 새로고침 (0 = 비활성)

    # 실패 처리 정책
    MAX_ATTEMPTS_PER_PRODUCT: Optional[int] = None  # None = 무한 재시도
    FATAL_ON_PAYLOAD_ERROR: bool = False

    @property
    def CALL_INTERVAL(self) -> float:
        """상품별 호출 간격 (초)"""
        return 60.0 / (self.MAX_CALLS_PER_MINUTE - self.CALL_SAFETY_MARGIN)

    @model_validator(mode="after")
    def check_call_budget(self) -> "Settings":
        if self.MAX_CALLS_PER_MINUTE - self.CALL_SAFETY_MARGIN <= 0:
            raise ValueError("CALL_SAFETY_MARGIN must be lower than MAX_CALLS_PER_MINUTE")
        if self.MAX_ATTEMPTS_PER_PRODUCT is not None and self.MAX_ATTEMPTS_PER_PRODUCT < 1:
            raise ValueError("MAX_ATTEMPTS_PER_PRODUCT must be positive")
        return self

    class Config:
        env_file = str(ENV_FILE)
        case_sensitive = True
        extra = "ignore"


# 전역 설정 인스턴스
settings = Settings()

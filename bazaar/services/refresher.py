"""
Refresher

상품 목록을 1회 조회한 뒤, 상품별 시세를 순차 조회하여
PriceTable을 갱신하는 백그라운드 루프입니다.

Polling Strategy:
1. 상품 목록 조회 (실패 시 재시도, 치명적이지 않음)
2. 목록 순서대로 상품별 시세 조회 → 성공 시 PriceTable에 커밋
3. 호출마다 60초 / (분당 제한 - 여유분) 대기 (기본 약 0.52초)
4. 전체 사이클 완료 → 쿨다운 (기본 120초) → 같은 목록으로 다시 시작
5. RELIST_EVERY_PASSES 사이클마다, 또는 request_relist() 호출 시 목록 재조회

Failure Policy:
- 실패한 상품은 건너뛰지 않고 같은 자리에서 재시도 (retry-in-place)
- RetryPolicy로 재시도 횟수 제한 및 페이로드 오류 즉시 중단 여부 지정
- 정책상 포기하면 RefreshAborted 발생 → 프로세스 종료
"""

import asyncio
import functools
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_fixed,
)

from bazaar.clients import BazaarClient
from bazaar.clients.exceptions import BazaarAPIError, UpstreamPayloadError, RefreshAborted
from bazaar.core.config import Settings
from bazaar.models import ProductPrice
from bazaar.services.price_table import PriceTable

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


def compute_call_interval(max_calls_per_minute: int, safety_margin: int) -> float:
    """
    분당 호출 제한에서 여유분을 뺀 호출 간격 계산

    Args:
        max_calls_per_minute: API 분당 최대 호출 수
        safety_margin: 제한보다 덜 호출할 여유분

    Returns:
        호출 간격 (초)
    """
    budget = max_calls_per_minute - safety_margin
    if budget <= 0:
        raise ValueError(
            f"safety margin ({safety_margin}) must be lower than the call limit ({max_calls_per_minute})"
        )
    return 60.0 / budget


class RetryPolicy:
    """
    상품별 조회 실패 시 재시도/중단 결정

    Args:
        max_attempts_per_product: 한 상품에 대한 최대 연속 시도 횟수 (None = 무한)
        fatal_on_payload_error: True면 잘못된 페이로드/success=false 시 즉시 중단
    """

    def __init__(self, max_attempts_per_product: Optional[int] = None, fatal_on_payload_error: bool = False):
        if max_attempts_per_product is not None and max_attempts_per_product < 1:
            raise ValueError("max_attempts_per_product must be positive")
        self.max_attempts_per_product = max_attempts_per_product
        self.fatal_on_payload_error = fatal_on_payload_error

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts_per_product=settings.MAX_ATTEMPTS_PER_PRODUCT,
            fatal_on_payload_error=settings.FATAL_ON_PAYLOAD_ERROR
        )

    def stop(self):
        if self.max_attempts_per_product is None:
            return stop_never
        return stop_after_attempt(self.max_attempts_per_product)

    def is_retryable(self, error: BaseException) -> bool:
        if isinstance(error, UpstreamPayloadError):
            return not self.fatal_on_payload_error
        return isinstance(error, BazaarAPIError)

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(max_attempts_per_product={self.max_attempts_per_product}, "
            f"fatal_on_payload_error={self.fatal_on_payload_error})"
        )


class Refresher:
    """PriceTable의 유일한 writer"""

    def __init__(
        self,
        client: BazaarClient,
        price_table: PriceTable,
        call_interval: float,
        cooldown: float,
        relist_every_passes: int = 1000,
        policy: Optional[RetryPolicy] = None,
        sleep: SleepFunc = asyncio.sleep
    ):
        self.client = client
        self.price_table = price_table
        self.call_interval = call_interval
        self.cooldown = cooldown
        self.relist_every_passes = relist_every_passes
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

        self.product_ids: List[str] = []
        self.passes_completed = 0
        self.last_pass_completed_at: Optional[datetime] = None
        self.failed_fetches = 0

        self.is_running = False
        self._relist_requested = True

    @classmethod
    def from_settings(
        cls,
        client: BazaarClient,
        price_table: PriceTable,
        settings: Settings,
        sleep: SleepFunc = asyncio.sleep
    ) -> "Refresher":
        return cls(
            client=client,
            price_table=price_table,
            call_interval=compute_call_interval(settings.MAX_CALLS_PER_MINUTE, settings.CALL_SAFETY_MARGIN),
            cooldown=settings.REFRESH_COOLDOWN,
            relist_every_passes=settings.RELIST_EVERY_PASSES,
            policy=RetryPolicy.from_settings(settings),
            sleep=sleep
        )

    @property
    def product_count(self) -> int:
        return len(self.product_ids)

    def request_relist(self):
        """다음 사이클 시작 시 상품 목록 재조회"""
        logger.info("📋 상품 목록 재조회 요청")
        self._relist_requested = True

    def _should_relist(self) -> bool:
        if self._relist_requested or not self.product_ids:
            return True
        if self.relist_every_passes > 0 and self.passes_completed > 0:
            return self.passes_completed % self.relist_every_passes == 0
        return False

    async def load_products(self) -> List[str]:
        """
        상품 목록 조회 (성공할 때까지 재시도)

        Returns:
            상품 ID 리스트
        """
        retrying = AsyncRetrying(
            stop=stop_never,
            wait=wait_fixed(self.call_interval),
            retry=retry_if_exception_type(BazaarAPIError),
            before_sleep=self._log_list_failure,
            sleep=self._sleep,
            reraise=True
        )

        async for attempt in retrying:
            with attempt:
                product_ids = await self.client.fetch_product_ids()

        self.product_ids = product_ids
        self._relist_requested = False
        logger.info(f"📋 {len(product_ids)} products loaded")

        # 목록 조회도 호출 제한에 포함
        await self._sleep(self.call_interval)
        return product_ids

    async def refresh_product(self, product_id: str) -> ProductPrice:
        """
        단일 상품 시세 조회 후 PriceTable 커밋 (실패 시 제자리 재시도)

        Args:
            product_id: 상품 ID

        Returns:
            커밋된 ProductPrice

        Raises:
            RefreshAborted: 재시도 정책이 포기한 경우
        """
        retrying = AsyncRetrying(
            stop=self.policy.stop(),
            wait=wait_fixed(self.call_interval),
            retry=retry_if_exception(self.policy.is_retryable),
            before_sleep=functools.partial(self._log_fetch_failure, product_id),
            sleep=self._sleep,
            reraise=True
        )

        try:
            async for attempt in retrying:
                with attempt:
                    price = await self.client.fetch_product_price(product_id)
        except BazaarAPIError as e:
            self.failed_fetches += 1
            logger.critical(f"❌ {product_id} 조회 포기 ({self.policy}): {e}")
            raise RefreshAborted(product_id, e) from e

        # 네트워크 호출이 끝난 값만 커밋, 쓰기 락 대기는 이벤트 루프 밖에서
        await asyncio.to_thread(self.price_table.put, product_id, price)
        return price

    async def run_pass(self, product_ids: List[str]):
        """
        전체 상품 1회 갱신 (refresh pass)

        Args:
            product_ids: 갱신할 상품 ID 리스트 (순서대로 처리)
        """
        for product_id in product_ids:
            await self.refresh_product(product_id)

            # API 제한 준수
            await self._sleep(self.call_interval)

    async def run_forever(self):
        """
        무한 갱신 루프

        Raises:
            RefreshAborted: 재시도 정책이 포기한 경우
        """
        self.is_running = True
        logger.info(
            f"🚀 Refresher 시작 (호출 간격 {self.call_interval:.3f}초, "
            f"쿨다운 {self.cooldown:.0f}초, {self.policy})"
        )

        try:
            while self.is_running:
                if self._should_relist():
                    await self.load_products()

                logger.info("🔄 Data update started")
                pass_start = time.monotonic()

                await self.run_pass(self.product_ids)

                self.passes_completed += 1
                self.last_pass_completed_at = datetime.now()
                logger.info(
                    f"✅ Data update completed "
                    f"(사이클 {self.passes_completed} | {len(self.product_ids)}개 | "
                    f"{time.monotonic() - pass_start:.1f}초)"
                )

                await self._sleep(self.cooldown)
        finally:
            self.is_running = False
            logger.info("Refresher stopped")

    def stop(self):
        """갱신 중지 (현재 대기가 끝난 뒤 루프 종료)"""
        logger.info("🛑 Refresher 중지 요청")
        self.is_running = False

    def _log_list_failure(self, retry_state: RetryCallState):
        error = retry_state.outcome.exception()
        logger.error(f"❌ 상품 목록 조회 실패 (시도 {retry_state.attempt_number}): {error}")

    def _log_fetch_failure(self, product_id: str, retry_state: RetryCallState):
        self.failed_fetches += 1
        error = retry_state.outcome.exception()
        status_code = getattr(error, "status_code", None)
        detail = f" [HTTP {status_code}]" if status_code is not None else ""
        logger.error(
            f"❌ {product_id} 조회 실패{detail} (시도 {retry_state.attempt_number}), 재시도 예정: {error}"
        )

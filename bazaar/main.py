"""
Bazaar Price Cache - Main Entry Point

Refresher(백그라운드 태스크)가 PriceTable을 갱신하고,
FastAPI 핸들러가 같은 PriceTable을 읽어 응답합니다.

Usage:
    python -m bazaar.main <API_KEY>
    python -m bazaar.main <API_KEY> --port 9000
"""

import argparse
import asyncio
import functools
import logging
import sys
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bazaar import __version__
from bazaar.api.dependencies import get_price_table, get_refresher
from bazaar.clients import BazaarClient
from bazaar.core.config import Settings, settings
from bazaar.services import PriceTable, Refresher
from bazaar.utils import setup_logging

logger = logging.getLogger(__name__)

FatalHandler = Callable[[BaseException], None]


def _on_refresher_done(app: FastAPI, task: asyncio.Task) -> None:
    """Refresher 태스크 종료 처리 (취소가 아니면 치명적 오류)"""
    if task.cancelled():
        return

    error = task.exception()
    if error is None:
        return

    logger.critical(f"❌ Refresher 비정상 종료 - 프로세스를 종료합니다: {error}", exc_info=error)
    app.state.fatal_error = error

    on_fatal = app.state.on_fatal
    if on_fatal is not None:
        on_fatal(error)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI 앱의 생명주기 관리

    시작 시: Refresher 태스크 시작
    종료 시: Refresher 중지 + HTTP 클라이언트 종료
    """
    refresher: Optional[Refresher] = app.state.refresher
    refresher_task: Optional[asyncio.Task] = None

    logger.info("🚀 Bazaar Price Cache 시작")

    if refresher is not None:
        refresher_task = asyncio.create_task(refresher.run_forever())
        refresher_task.add_done_callback(functools.partial(_on_refresher_done, app))
    else:
        logger.warning("⚠️ Refresher 없이 실행 중 - 가격이 갱신되지 않습니다")

    yield  # 앱 실행 중

    logger.info("🛑 Bazaar Price Cache 종료")
    if refresher_task is not None:
        refresher.stop()
        refresher_task.cancel()
        await asyncio.gather(refresher_task, return_exceptions=True)
        await refresher.client.close()
        logger.info("✅ Refresher stopped, HTTP client closed")


def create_app(
    price_table: Optional[PriceTable] = None,
    refresher: Optional[Refresher] = None,
    app_settings: Optional[Settings] = None,
    on_fatal: Optional[FatalHandler] = None
) -> FastAPI:
    """
    FastAPI 애플리케이션 생성 및 설정

    Args:
        price_table: 핸들러가 읽을 가격표 (refresher가 있으면 그 가격표를 사용)
        refresher: 백그라운드 갱신 루프 (None이면 서빙만 수행)
        app_settings: 설정 (기본값: 전역 settings)
        on_fatal: Refresher가 중단됐을 때 호출할 콜백

    Returns:
        FastAPI: 설정된 FastAPI 인스턴스
    """
    app_settings = app_settings or settings

    if refresher is not None:
        if price_table is not None and price_table is not refresher.price_table:
            raise ValueError("refresher must write to the price table it serves")
        price_table = refresher.price_table

    app = FastAPI(
        title="Bazaar Price Cache",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan
    )

    app.state.settings = app_settings
    app.state.price_table = price_table if price_table is not None else PriceTable()
    app.state.refresher = refresher
    app.state.on_fatal = on_fatal
    app.state.fatal_error = None

    setup_exception_handlers(app)
    setup_routers(app)

    logger.info("FastAPI application initialized")

    return app


def setup_exception_handlers(app: FastAPI) -> None:
    """
    HTTP 오류를 plain text로 응답 (JSON 대신)

    Args:
        app: FastAPI 인스턴스
    """

    @app.exception_handler(StarletteHTTPException)
    async def plain_text_http_exception(request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


def setup_routers(app: FastAPI) -> None:
    """
    API 라우터 등록

    Args:
        app: FastAPI 인스턴스
    """
    from bazaar.api import prices_router
    app.include_router(prices_router)

    @app.get("/health")
    def health_check(
        price_table: PriceTable = Depends(get_price_table),
        refresher: Optional[Refresher] = Depends(get_refresher)
    ):
        """헬스 체크 엔드포인트"""
        last_pass = refresher.last_pass_completed_at if refresher else None

        return {
            "status": "unhealthy" if app.state.fatal_error else "healthy",
            "environment": app.state.settings.ENVIRONMENT,
            "cached_products": len(price_table),
            "refresher": {
                "running": refresher.is_running,
                "listed_products": refresher.product_count,
                "passes_completed": refresher.passes_completed,
                "last_pass_completed_at": last_pass.isoformat() if last_pass else None,
                "failed_fetches": refresher.failed_fetches,
            } if refresher else None
        }

    logger.info("Routers registered")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bazaar-price-cache",
        description="Poll the SkyBlock bazaar API and serve cached prices over HTTP"
    )
    parser.add_argument("api_key", help="Hypixel API key")
    parser.add_argument(
        "--host",
        default=settings.HOST,
        help=f"Host to bind to (default: {settings.HOST})"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help=f"Port to listen on (default: {settings.PORT})"
    )

    args = parser.parse_args(argv)
    if not args.api_key.strip():
        parser.error("API key missing")
    return args


def main(argv: Optional[List[str]] = None) -> None:
    """메인 함수"""
    args = parse_args(argv)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    logger.info("=" * 60)
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Bazaar API: {settings.BAZAAR_API_URL}")
    logger.info(f"Rate limit: {settings.MAX_CALLS_PER_MINUTE}/min (margin {settings.CALL_SAFETY_MARGIN})")
    logger.info(f"Refresh cooldown: {settings.REFRESH_COOLDOWN}s")
    logger.info(f"Request timeout: {settings.REQUEST_TIMEOUT}s")
    logger.info("=" * 60)

    price_table = PriceTable()
    client = BazaarClient(api_key=args.api_key)
    refresher = Refresher.from_settings(client, price_table, settings)
    app = create_app(refresher=refresher)

    server = uvicorn.Server(
        uvicorn.Config(app, host=args.host, port=args.port, log_level=settings.LOG_LEVEL.lower())
    )

    def request_exit(error: BaseException) -> None:
        server.should_exit = True

    app.state.on_fatal = request_exit

    logger.info(f"Listening on http://{args.host}:{args.port}")
    server.run()

    if app.state.fatal_error is not None:
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Logging configuration for Bazaar Price Cache

stdout 콘솔 핸들러 + (선택) 로테이팅 파일 핸들러
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# 로그 파일 최대 크기 및 백업 개수
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    루트 로거 설정

    Args:
        level: 로그 레벨 이름 (DEBUG, INFO, ...)
        log_file: 로그 파일 경로 (None이면 콘솔만 사용)
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        if not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)

        handlers.append(
            RotatingFileHandler(
                log_path,
                maxBytes=LOG_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding='utf-8'
            )
        )

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True
    )

    # httpx 로그 레벨을 WARNING으로 설정 (요청마다 남는 INFO 로그 숨기기, API 키 노출 방지)
    logging.getLogger('httpx').setLevel(logging.WARNING)

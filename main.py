#!/usr/bin/env python3
"""Playmanity 세션 호스트 메인 실행 스크립트

인증 토큰(또는 디바이스 인증)으로 게임 세션을 시작하고,
Ctrl+C/SIGTERM을 받을 때까지 하트비트를 유지한 뒤 세션을 종료합니다.
"""

import asyncio
import logging
import sys
from dotenv import load_dotenv

from playmanity.config import configure_logging, get_settings
from playmanity.services import run_host

# .env 파일 로드 (애플리케이션 시작 시)
load_dotenv()

settings = get_settings()

# 루트 로거와 API 트래픽 로거 설정
configure_logging(settings.log_level, settings.api_log_file)

logger = logging.getLogger(__name__)


def main():
    """메인 함수: 세션 호스트 실행"""
    try:
        logger.info("Playmanity 세션 호스트 시작")
        return asyncio.run(run_host(settings))

    except KeyboardInterrupt:
        logger.info("호스트 종료 (Ctrl+C)")
        return 0
    except Exception as e:
        logger.error(f"호스트 실행 오류: {e}")
        raise


if __name__ == "__main__":
    sys.exit(main())

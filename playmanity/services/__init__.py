"""
호스트 서비스 모듈

게임 프로세스 시작/종료 훅과 세션 실행 흐름을 제공합니다.
"""

from .host import PlaymanityHost, create_host, run_host

__all__ = ["PlaymanityHost", "create_host", "run_host"]

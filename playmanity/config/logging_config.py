"""로깅 설정 모듈

애플리케이션 로거와 API 트래픽 로거(api_traffic)를 설정합니다.
"""

import logging
from pathlib import Path
from typing import Optional


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO", api_log_file: Optional[str] = None) -> logging.Logger:
    """기본 로깅 설정

    Args:
        level: 루트 로그 레벨
        api_log_file: API 요청/응답 기록 파일 경로 (None이면 콘솔로만 출력)

    Returns:
        api_traffic 로거
    """
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)

    # 요청/응답 기록을 위한 별도 로거 설정
    api_traffic_logger = logging.getLogger('api_traffic')
    api_traffic_logger.setLevel(logging.INFO)

    # 핸들러 중복 추가 방지 (이미 있으면 파일을 다시 열지 않음)
    if api_log_file and not any(isinstance(h, logging.FileHandler) for h in api_traffic_logger.handlers):
        Path(api_log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(api_log_file, encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        api_traffic_logger.addHandler(file_handler)

    return api_traffic_logger

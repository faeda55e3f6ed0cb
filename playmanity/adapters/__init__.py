"""
API 전송 계층 모듈

세션 관리자와 디바이스 인증이 사용하는 HTTP 전송 인터페이스를 제공합니다.
"""

from .transport import ApiTransport, HttpxTransport, create_transport, mask_secrets

__all__ = ["ApiTransport", "HttpxTransport", "create_transport", "mask_secrets"]

"""디바이스 인증 패키지"""

from .device_auth import (
    DeviceAuthenticator,
    authenticate_and_start_session,
    AUTH_INITIATE_PATH,
    AUTH_STATUS_PATH
)

__all__ = [
    'DeviceAuthenticator',
    'authenticate_and_start_session',
    'AUTH_INITIATE_PATH',
    'AUTH_STATUS_PATH'
]

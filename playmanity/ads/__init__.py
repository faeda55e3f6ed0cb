"""광고 재생 패키지"""

from .ad_playback import (
    AdRenderer,
    NullAdRenderer,
    AdPlaybackHandle,
    AdPlayback
)

__all__ = [
    'AdRenderer',
    'NullAdRenderer',
    'AdPlaybackHandle',
    'AdPlayback'
]

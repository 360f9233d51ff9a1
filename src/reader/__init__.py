"""Point-to-read interaction core: tap a text region, hear it spoken."""

from .client import GatewayClient
from .geometry import hit_test, normalize_point
from .models import NormalizedPoint, Region, SessionSnapshot, Status, TranslationMode
from .playback import PlaybackController, PlaybackHandle
from .session import ReaderSession

__all__ = [
    "GatewayClient",
    "NormalizedPoint",
    "PlaybackController",
    "PlaybackHandle",
    "ReaderSession",
    "Region",
    "SessionSnapshot",
    "Status",
    "TranslationMode",
    "hit_test",
    "normalize_point",
]

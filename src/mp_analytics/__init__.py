"""MP Analytics — server-side hits for Google (Universal) Analytics.

Sends events, pageviews, e-commerce transactions and items, social
interactions, timings and exceptions through the Measurement Protocol,
for cases where the thing worth tracking happens on the server rather
than in a browser.

Integration points:
    1. Direct API      — MeasurementProtocolTracker.send_*()
    2. Prebuilt hits   — tracker.send_hit(EventHit(...))
    3. Pure helpers    — build_payload() / encode_payload()
"""

from mp_analytics.client_hooks import HitResponseHook
from mp_analytics.config import (
    ConfigProvider,
    CookieReader,
    EnvironConfigProvider,
    MappingCookieReader,
)
from mp_analytics.errors import (
    InvalidTrackingIdError,
    MeasurementProtocolError,
    PayloadTooLargeError,
)
from mp_analytics.events import (
    EventHit,
    ExceptionHit,
    Hit,
    HitType,
    ItemHit,
    PageviewHit,
    SocialHit,
    TimingHit,
    TransactionHit,
    UserTimingHit,
)
from mp_analytics.payload import build_payload, encode_payload
from mp_analytics.tracker import MeasurementProtocolTracker

__all__ = [
    "MeasurementProtocolTracker",
    "HitType",
    "Hit",
    "EventHit",
    "PageviewHit",
    "TransactionHit",
    "ItemHit",
    "SocialHit",
    "TimingHit",
    "UserTimingHit",
    "ExceptionHit",
    "ConfigProvider",
    "CookieReader",
    "EnvironConfigProvider",
    "MappingCookieReader",
    "MeasurementProtocolError",
    "InvalidTrackingIdError",
    "PayloadTooLargeError",
    "HitResponseHook",
    "build_payload",
    "encode_payload",
]

__version__ = "0.1.0"

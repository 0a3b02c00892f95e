"""Tracking ID validation and client ID resolution.

Client IDs come from, in order of preference:

1. a caller-supplied value in analytics.js cookie format
   (``GA1.2.123456789.987654321`` or just ``123456789.987654321``),
2. a caller-supplied UUIDv4,
3. the ``_ga`` cookie of the current visitor,
4. a freshly generated random UUIDv4.
"""

from __future__ import annotations

import logging
import random
import re
import uuid
from typing import Optional

from mp_analytics.config import GA_COOKIE_NAME, CookieReader

logger = logging.getLogger(__name__)

TRACKING_ID_PATTERN = re.compile(r"UA-\d+-\d")

# analytics.js client IDs, optionally prefixed by cookie version/domain depth
_GA_CLIENT_ID_RE = re.compile(r".*(\d{9}\.\d{9})")

_UUID4_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE,
)


def is_valid_tracking_id(tracking_id: Optional[str]) -> bool:
    if not tracking_id or not isinstance(tracking_id, str):
        return False
    return TRACKING_ID_PATTERN.search(tracking_id) is not None


def is_uuid4(value: Optional[str]) -> bool:
    return bool(value) and _UUID4_RE.fullmatch(value) is not None


def generate_client_id(rng: Optional[random.Random] = None) -> str:
    """Return a random UUIDv4 string.

    Uses a general-purpose PRNG; client IDs are pseudonymous, not secret.
    """
    source = rng or random
    return str(uuid.UUID(int=source.getrandbits(128), version=4))


def client_id_from_cookie(cookie_value: Optional[str]) -> Optional[str]:
    """Strip the ``GA<version>.<depth>.`` prefix from a ``_ga`` cookie value."""
    if not cookie_value:
        return None
    parts = cookie_value.split(".", 2)
    if len(parts) < 3 or not parts[2]:
        return None
    return parts[2]


def resolve_client_id(
    client_id: Optional[str] = None,
    cookies: Optional[CookieReader] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Pick the client ID to report hits under."""
    candidate = client_id or ""

    match = _GA_CLIENT_ID_RE.fullmatch(candidate)
    if match:
        return match.group(1)

    if is_uuid4(candidate):
        return candidate

    if cookies is not None:
        from_cookie = client_id_from_cookie(cookies.get(GA_COOKIE_NAME))
        if from_cookie:
            logger.debug("Using client ID from %s cookie", GA_COOKIE_NAME)
            return from_cookie

    generated = generate_client_id(rng)
    logger.debug("Generated new client ID %s", generated)
    return generated

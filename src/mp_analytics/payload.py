"""Assemble, encode and size-check Measurement Protocol payloads.

Everything here is a pure function of its arguments so the
merge-then-encode behaviour can be exercised without a tracker.
"""

from __future__ import annotations

import random
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

from mp_analytics.errors import PayloadTooLargeError

MEASUREMENT_PROTOCOL_URL = "https://www.google-analytics.com/collect"
MEASUREMENT_PROTOCOL_VERSION = "1"
MAX_GET_URL_LENGTH = 2000
MAX_POST_BODY_LENGTH = 8192

CACHE_BUSTER_DIGITS = 14


def build_payload(
    tracking_id: str,
    client_id: str,
    hit_parameters: Mapping[str, Any],
    request_parameters: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Merge protocol, hit and accumulated parameters into a new dict.

    Later sources win: request parameters override hit parameters,
    which override ``v``/``tid``/``cid``.
    """
    payload: Dict[str, Any] = {
        "v": MEASUREMENT_PROTOCOL_VERSION,
        "tid": tracking_id,
        "cid": client_id,
    }
    payload.update(hit_parameters)
    if request_parameters:
        payload.update(request_parameters)
    return payload


def _encode_value(value: Any) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    return value


def encode_payload(payload: Mapping[str, Any]) -> str:
    """URL-encode as ``k=v&k=v`` (UTF-8, ``+`` for spaces). ``None`` values are dropped."""
    return urlencode(
        [(k, _encode_value(v)) for k, v in payload.items() if v is not None],
        encoding="utf-8",
    )


def cache_buster(rng: Optional[random.Random] = None) -> str:
    source = rng or random
    return str(source.randrange(10**CACHE_BUSTER_DIGITS)).zfill(CACHE_BUSTER_DIGITS)


def check_post_body(body: str, limit: int = MAX_POST_BODY_LENGTH) -> None:
    size = len(body.encode("utf-8"))
    if size > limit:
        raise PayloadTooLargeError(
            f"The body of a POST request must be no greater than {limit} bytes. "
            f"The body of this request would be {size} bytes long.",
            size=size,
            limit=limit,
        )


def check_get_url(url: str, limit: int = MAX_GET_URL_LENGTH) -> None:
    size = len(url)
    if size > limit:
        raise PayloadTooLargeError(
            f"The final, encoded URL for a GET request must be no greater than "
            f"{limit} bytes. The URL for this request would be {size} bytes long.",
            size=size,
            limit=limit,
        )

"""HTTPX event hook for Measurement Protocol collection requests.

The collection endpoint answers every well-formed request with a 2xx and
an empty GIF, so the only thing worth watching is the status code.  The
tracker installs this hook on the client it creates; attach it yourself
when passing your own client::

    import httpx
    from mp_analytics import HitResponseHook, MeasurementProtocolTracker

    client = httpx.Client(event_hooks={"response": [HitResponseHook()]})
    tracker = MeasurementProtocolTracker("UA-12345-1", http_client=client)
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class HitResponseHook:
    """Logs every collection response; non-2xx responses at WARNING."""

    def __init__(self) -> None:
        self.responses = 0
        self.failures = 0

    def __call__(self, response: httpx.Response) -> None:
        """Called by HTTPX after each response is received."""
        request = response.request
        self.responses += 1

        if response.is_success:
            logger.debug(
                "Hit accepted: %s %s -> %d",
                request.method,
                request.url.path,
                response.status_code,
            )
            return

        self.failures += 1
        logger.warning(
            "Collection endpoint returned %d for %s %s",
            response.status_code,
            request.method,
            request.url.path,
        )

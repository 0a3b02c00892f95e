"""MeasurementProtocolTracker — the main entry point for sending hits.

Builds Measurement Protocol parameters per hit type, merges any custom
dimensions/metrics set since the previous hit, and sends one synchronous
HTTP request per call.
"""

from __future__ import annotations

import logging
import random
import re
from typing import Any, Dict, Mapping, Optional

import httpx

from mp_analytics.client_hooks import HitResponseHook
from mp_analytics.config import (
    TRACKING_ID_CONFIG_KEY,
    ConfigProvider,
    CookieReader,
    EnvironConfigProvider,
)
from mp_analytics.errors import InvalidTrackingIdError, PayloadTooLargeError
from mp_analytics.events import (
    EventHit,
    ExceptionHit,
    Hit,
    ItemHit,
    PageviewHit,
    SocialHit,
    TimingHit,
    TransactionHit,
    UserTimingHit,
)
from mp_analytics.identifiers import is_valid_tracking_id, resolve_client_id
from mp_analytics.payload import (
    MEASUREMENT_PROTOCOL_URL,
    build_payload,
    cache_buster,
    check_get_url,
    check_post_body,
    encode_payload,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("POST", "GET")

_DIMENSION_RE = re.compile(r"cd[1-9][0-9]*")
_METRIC_RE = re.compile(r"cm[1-9][0-9]*")


class MeasurementProtocolTracker:
    """Sends hits to Google (Universal) Analytics via the Measurement Protocol.

    Usage::

        tracker = MeasurementProtocolTracker(
            "UA-12345-1",
            cookies=MappingCookieReader(request.cookies),
            user_agent=request.headers.get("user-agent"),
        )
        tracker.set_dimensions({"cd3": "Male"})
        response = tracker.send_event("Videos", "play", "Fall Campaign", 42)
        if response is None:
            logger.error(tracker.get_error_message())

    Custom dimensions and metrics apply to the *next* hit only, whatever
    scope they were defined with in the GA property.  The anonymize-IP
    flag, if requested, is sent with every hit.

    Not safe for concurrent use from several threads.
    """

    def __init__(
        self,
        tracking_id: Optional[str] = None,
        client_id: Optional[str] = None,
        http_method: str = "POST",
        anonymize_ip: bool = False,
        use_cache_buster: bool = False,
        *,
        config: Optional[ConfigProvider] = None,
        cookies: Optional[CookieReader] = None,
        user_agent: Optional[str] = None,
        endpoint: str = MEASUREMENT_PROTOCOL_URL,
        timeout: float = 5.0,
        http_client: Optional[httpx.Client] = None,
        rng: Optional[random.Random] = None,
    ):
        if not tracking_id:
            config = config if config is not None else EnvironConfigProvider()
            tracking_id = config.get(TRACKING_ID_CONFIG_KEY)
        if not is_valid_tracking_id(tracking_id):
            raise InvalidTrackingIdError(tracking_id)

        self._rng = rng
        self._tracking_id = tracking_id
        self._client_id = resolve_client_id(client_id, cookies, rng=rng)

        if http_method not in HTTP_METHODS:
            logger.debug("Unsupported HTTP method %r; using POST", http_method)
            http_method = "POST"
        self._http_method = http_method
        self.use_cache_buster = use_cache_buster
        self.user_agent = user_agent
        self.endpoint = endpoint

        self._base_parameters: Dict[str, Any] = {"aip": 1} if anonymize_ip else {}
        self._request_parameters: Dict[str, Any] = dict(self._base_parameters)
        self._error_message: Optional[str] = None
        self.last_payload: Optional[Dict[str, Any]] = None

        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.Client(
                timeout=timeout,
                event_hooks={"response": [HitResponseHook()]},
            )
        self._client = http_client

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    @property
    def tracking_id(self) -> str:
        return self._tracking_id

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def http_method(self) -> str:
        return self._http_method

    @property
    def request_parameters(self) -> Dict[str, Any]:
        """Snapshot of the parameters that will ride along with the next hit."""
        return dict(self._request_parameters)

    # ------------------------------------------------------------------ #
    # Custom dimensions / metrics
    # ------------------------------------------------------------------ #

    def set_dimensions(self, dimensions: Mapping[str, Any]) -> None:
        """Set custom dimensions (``cd<N>`` keys) for the next hit.

        Keys that are not ``cd`` followed by a positive index are ignored.
        """
        self._set_indexed(dimensions, _DIMENSION_RE)

    def set_metrics(self, metrics: Mapping[str, Any]) -> None:
        """Set custom metrics (``cm<N>`` keys) for the next hit."""
        self._set_indexed(metrics, _METRIC_RE)

    def _set_indexed(self, values: Mapping[str, Any], pattern: re.Pattern) -> None:
        for key, value in values.items():
            if isinstance(key, str) and pattern.fullmatch(key):
                self._request_parameters[key] = value
            else:
                logger.debug("Ignoring custom parameter with bad index %r", key)

    # ------------------------------------------------------------------ #
    # Hits
    # ------------------------------------------------------------------ #

    def send_event(
        self,
        category: str,
        action: str,
        label: Optional[str] = None,
        value: Optional[int] = None,
    ) -> Optional[httpx.Response]:
        return self.send_hit(EventHit(category, action, label, value))

    def send_pageview(
        self,
        doc_path: Optional[str] = None,
        doc_title: Optional[str] = None,
        doc_host: Optional[str] = None,
        doc_location: Optional[str] = None,
        content_description: Optional[str] = None,
    ) -> Optional[httpx.Response]:
        return self.send_hit(
            PageviewHit(doc_path, doc_title, doc_host, doc_location, content_description)
        )

    def send_transaction(
        self,
        transaction_id: str,
        affiliation: Optional[str] = None,
        revenue: Optional[float] = None,
        shipping: Optional[float] = None,
        tax: Optional[float] = None,
        currency: Optional[str] = None,
    ) -> Optional[httpx.Response]:
        return self.send_hit(
            TransactionHit(transaction_id, affiliation, revenue, shipping, tax, currency)
        )

    def send_item(
        self,
        transaction_id: str,
        name: str,
        price: Optional[float] = None,
        quantity: Optional[int] = None,
        code: Optional[str] = None,
        category: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Optional[httpx.Response]:
        return self.send_hit(
            ItemHit(transaction_id, name, price, quantity, code, category, currency)
        )

    def send_social_action(
        self, network: str, action: str, target: str
    ) -> Optional[httpx.Response]:
        return self.send_hit(SocialHit(network, action, target))

    def send_timing_data(
        self,
        page_load: Optional[int] = None,
        dns: Optional[int] = None,
        page_download: Optional[int] = None,
        redirect: Optional[int] = None,
        tcp_connect: Optional[int] = None,
        server_response: Optional[int] = None,
    ) -> Optional[httpx.Response]:
        """Send browser timing data. For user timings see send_user_timing_data()."""
        return self.send_hit(
            TimingHit(page_load, dns, page_download, redirect, tcp_connect, server_response)
        )

    def send_user_timing_data(
        self,
        category: Optional[str] = None,
        var_name: Optional[str] = None,
        time: Optional[int] = None,
        label: Optional[str] = None,
    ) -> Optional[httpx.Response]:
        return self.send_hit(UserTimingHit(category, var_name, time, label))

    def send_exception(
        self, description: Optional[str] = None, is_fatal: bool = True
    ) -> Optional[httpx.Response]:
        return self.send_hit(ExceptionHit(description, is_fatal))

    def send_hit(self, hit: Hit) -> Optional[httpx.Response]:
        """Send a prebuilt hit object."""
        return self.submit_request(hit.to_params())

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def submit_request(
        self, hit_parameters: Mapping[str, Any]
    ) -> Optional[httpx.Response]:
        """Send one hit and return the raw HTTP response.

        Returns None without sending anything if the encoded hit is too
        large for the configured method; get_error_message() says why.
        Transport errors propagate from httpx unchanged.
        """
        payload = build_payload(
            self._tracking_id,
            self._client_id,
            hit_parameters,
            self._request_parameters,
        )
        # Custom parameters only ride along with one hit.
        self._request_parameters = dict(self._base_parameters)
        self.last_payload = payload

        encoded = encode_payload(payload)
        headers = {}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent

        url = self.endpoint
        if self._http_method == "GET":
            url = f"{url}?{encoded}"
            if self.use_cache_buster:
                url += f"&z={cache_buster(self._rng)}"

        try:
            if self._http_method == "POST":
                check_post_body(encoded)
            else:
                check_get_url(url)
        except PayloadTooLargeError as exc:
            self._error_message = str(exc)
            logger.warning("Dropping %s hit: %s", payload.get("t", "?"), exc)
            return None

        logger.debug("Sending %s hit via %s", payload.get("t", "?"), self._http_method)
        if self._http_method == "POST":
            headers["Content-Type"] = "application/x-www-form-urlencoded; charset=utf-8"
            return self._client.post(
                url, content=encoded.encode("utf-8"), headers=headers
            )
        return self._client.get(url, headers=headers)

    def get_error_message(self) -> Optional[str]:
        """Return the message of the most recent failed send, or None."""
        return self._error_message

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Release the HTTP client if the tracker created it."""
        if self._owns_client:
            self._client.close()
        logger.info("MeasurementProtocolTracker closed")

    def __enter__(self) -> "MeasurementProtocolTracker":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

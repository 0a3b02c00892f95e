"""Tests for MeasurementProtocolTracker."""

import random
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from mp_analytics.config import EnvironConfigProvider, MappingCookieReader
from mp_analytics.errors import InvalidTrackingIdError
from mp_analytics.events import EventHit
from mp_analytics.identifiers import is_uuid4
from mp_analytics.payload import (
    MAX_GET_URL_LENGTH,
    MEASUREMENT_PROTOCOL_URL,
    build_payload,
    encode_payload,
)
from mp_analytics.tracker import MeasurementProtocolTracker

TID = "UA-12345-1"
CID = "123456789.987654321"


class RecordingTransport(httpx.MockTransport):
    """Mock transport that keeps every request it was handed."""

    def __init__(self, status_code: int = 200):
        self.requests = []
        self.status_code = status_code
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=b"GIF89a")


def _params(request: httpx.Request) -> dict:
    if request.method == "POST":
        raw = request.content.decode("utf-8")
    else:
        raw = urlsplit(str(request.url)).query
    return {k: v[0] for k, v in parse_qs(raw).items()}


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def make_tracker(transport):
    def _make(**kwargs):
        kwargs.setdefault("tracking_id", TID)
        kwargs.setdefault("client_id", CID)
        kwargs.setdefault("config", EnvironConfigProvider(environ={}))
        return MeasurementProtocolTracker(
            http_client=httpx.Client(transport=transport), **kwargs
        )

    return _make


@pytest.fixture
def tracker(make_tracker):
    return make_tracker()


class TestConstruction:
    @pytest.mark.parametrize("tracking_id", ["G-XXXXXXX", "UA-abc-1", "12345"])
    def test_invalid_tracking_id_raises(self, tracking_id):
        with pytest.raises(InvalidTrackingIdError):
            MeasurementProtocolTracker(
                tracking_id, config=EnvironConfigProvider(environ={})
            )

    def test_missing_tracking_id_without_config_raises(self):
        with pytest.raises(InvalidTrackingIdError):
            MeasurementProtocolTracker(config=EnvironConfigProvider(environ={}))

    def test_invalid_tracking_id_is_value_error(self):
        with pytest.raises(ValueError):
            MeasurementProtocolTracker("nope", config=EnvironConfigProvider(environ={}))

    def test_tracking_id_from_config(self):
        config = EnvironConfigProvider(environ={"GOOGLEANALYTICS_ACCOUNT": "UA-999-2"})
        tracker = MeasurementProtocolTracker(config=config)
        assert tracker.tracking_id == "UA-999-2"
        tracker.close()

    def test_explicit_tracking_id_beats_config(self, make_tracker):
        config = EnvironConfigProvider(environ={"GOOGLEANALYTICS_ACCOUNT": "UA-999-2"})
        assert make_tracker(config=config).tracking_id == TID

    def test_client_id_resolved(self, make_tracker):
        assert make_tracker(client_id="GA1.2." + CID).client_id == CID

    def test_client_id_from_cookie(self, make_tracker):
        cookies = MappingCookieReader({"_ga": "GA1.2.111111111.222222222"})
        tracker = make_tracker(client_id=None, cookies=cookies)
        assert tracker.client_id == "111111111.222222222"

    def test_client_id_generated(self, make_tracker):
        assert is_uuid4(make_tracker(client_id=None).client_id)

    @pytest.mark.parametrize("method", ["PUT", "get", "", None])
    def test_unknown_method_coerced_to_post(self, make_tracker, method):
        assert make_tracker(http_method=method).http_method == "POST"

    def test_get_method_kept(self, make_tracker):
        assert make_tracker(http_method="GET").http_method == "GET"

    def test_http_method_is_read_only(self, tracker):
        with pytest.raises(AttributeError):
            tracker.http_method = "PUT"
        assert tracker.http_method == "POST"

    def test_anonymize_ip_seeded(self, make_tracker):
        assert make_tracker(anonymize_ip=True).request_parameters == {"aip": 1}

    def test_no_error_initially(self, tracker):
        assert tracker.get_error_message() is None


class TestCustomParameters:
    def test_dimensions_filtered(self, tracker):
        tracker.set_dimensions({"cd3": "Male", "bad": "x"})
        assert tracker.request_parameters == {"cd3": "Male"}

    def test_metrics_filtered(self, tracker):
        tracker.set_metrics({"cm1": 450, "cm0": 1, "cd2": "wrong setter", "cm12": 3})
        assert tracker.request_parameters == {"cm1": 450, "cm12": 3}

    def test_overwrites_existing(self, tracker):
        tracker.set_dimensions({"cd1": "a"})
        tracker.set_dimensions({"cd1": "b"})
        assert tracker.request_parameters["cd1"] == "b"

    def test_request_parameters_is_a_copy(self, tracker):
        tracker.request_parameters["cd1"] = "sneaky"
        assert tracker.request_parameters == {}

    def test_sent_with_next_hit_only(self, tracker, transport):
        tracker.set_dimensions({"cd3": "Male"})
        tracker.set_metrics({"cm1": 450})
        tracker.send_event("Cat", "Act")
        tracker.send_event("Cat", "Act")

        first, second = (_params(r) for r in transport.requests)
        assert first["cd3"] == "Male"
        assert first["cm1"] == "450"
        assert "cd3" not in second
        assert "cm1" not in second
        assert tracker.request_parameters == {}

    def test_anonymize_ip_survives_reset(self, make_tracker, transport):
        tracker = make_tracker(anonymize_ip=True)
        tracker.set_dimensions({"cd1": "x"})
        tracker.send_pageview("/a")
        tracker.send_pageview("/b")

        assert tracker.request_parameters == {"aip": 1}
        assert all(_params(r)["aip"] == "1" for r in transport.requests)


class TestHits:
    def test_event_minimal_keys(self, tracker, transport):
        response = tracker.send_event("Cat", "Act")

        assert response.status_code == 200
        params = _params(transport.requests[0])
        assert set(params) == {"v", "tid", "cid", "t", "ec", "ea"}
        assert params["v"] == "1"
        assert params["tid"] == TID
        assert params["cid"] == CID

    def test_event_full_keys(self, tracker, transport):
        tracker.send_event("Cat", "Act", "Label", 5)

        params = _params(transport.requests[0])
        assert set(params) == {"v", "tid", "cid", "t", "ec", "ea", "el", "ev"}
        assert params["el"] == "Label"
        assert params["ev"] == "5"

    def test_pageview(self, tracker):
        tracker.send_pageview("/home", "Home")
        assert tracker.last_payload["t"] == "pageview"
        assert tracker.last_payload["dp"] == "/home"
        assert tracker.last_payload["dt"] == "Home"
        assert "dh" not in tracker.last_payload

    def test_transaction_and_item(self, tracker):
        tracker.send_transaction("T-1", "Shop", 10.5, currency="USD")
        assert tracker.last_payload["tr"] == 10.5
        assert "ts" not in tracker.last_payload

        tracker.send_item("T-1", "Socks", 3.5, 3)
        assert tracker.last_payload["in"] == "Socks"
        assert tracker.last_payload["iq"] == 3

    def test_social(self, tracker):
        tracker.send_social_action("facebook", "like", "http://example.com")
        assert tracker.last_payload["sn"] == "facebook"

    def test_timings(self, tracker):
        tracker.send_timing_data(page_load=3000, server_response=120)
        assert tracker.last_payload["plt"] == 3000
        assert tracker.last_payload["srt"] == 120

        tracker.send_user_timing_data("loader", "load", 250)
        assert tracker.last_payload["utt"] == 250
        assert "utl" not in tracker.last_payload

    def test_exception_always_has_fatal_flag(self, tracker, transport):
        tracker.send_exception(None, True)

        params = _params(transport.requests[0])
        assert params["exf"] == "1"
        assert "exd" not in params

    def test_send_prebuilt_hit(self, tracker):
        tracker.send_hit(EventHit("Cat", "Act", value=9))
        assert tracker.last_payload["ev"] == 9


class TestTransport:
    def test_post_request(self, tracker, transport):
        tracker.send_event("Cat", "Act")

        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == MEASUREMENT_PROTOCOL_URL
        assert request.headers["content-type"].startswith(
            "application/x-www-form-urlencoded"
        )

    def test_get_request(self, make_tracker, transport):
        tracker = make_tracker(http_method="GET")
        tracker.send_event("Cat", "Act")

        request = transport.requests[0]
        assert request.method == "GET"
        assert request.content == b""
        assert _params(request)["ec"] == "Cat"
        assert "z" not in _params(request)

    def test_cache_buster(self, make_tracker, transport):
        tracker = make_tracker(
            http_method="GET", use_cache_buster=True, rng=random.Random(3)
        )
        tracker.send_event("Cat", "Act")

        z = _params(transport.requests[0])["z"]
        assert len(z) == 14
        assert z.isdigit()

    def test_cache_buster_ignored_for_post(self, make_tracker, transport):
        make_tracker(use_cache_buster=True).send_event("Cat", "Act")
        assert "z" not in _params(transport.requests[0])

    def test_user_agent_forwarded(self, make_tracker, transport):
        make_tracker(user_agent="Mozilla/5.0 (Test)").send_event("Cat", "Act")
        assert transport.requests[0].headers["user-agent"] == "Mozilla/5.0 (Test)"

    def test_custom_endpoint(self, make_tracker, transport):
        make_tracker(endpoint="https://example.com/debug/collect").send_pageview()
        assert transport.requests[0].url.path == "/debug/collect"

    def test_non_2xx_returned_as_is(self):
        transport = RecordingTransport(status_code=503)
        tracker = MeasurementProtocolTracker(
            TID, CID, http_client=httpx.Client(transport=transport)
        )

        response = tracker.send_pageview()

        assert response.status_code == 503
        assert tracker.get_error_message() is None

    def test_transport_errors_propagate(self):
        def _boom(request):
            raise httpx.ConnectError("no route", request=request)

        tracker = MeasurementProtocolTracker(
            TID, CID, http_client=httpx.Client(transport=httpx.MockTransport(_boom))
        )

        with pytest.raises(httpx.ConnectError):
            tracker.send_pageview()


class TestSizeLimits:
    def test_oversized_post_not_sent(self, tracker, transport):
        tracker.set_dimensions({"cd1": "kept until send"})

        result = tracker.send_event("Cat", "Act", "x" * 9000)

        assert result is None
        assert transport.requests == []
        assert "8192" in tracker.get_error_message()
        assert tracker.error_message == tracker.get_error_message()
        assert tracker.request_parameters == {}

    def test_oversized_get_not_sent(self, make_tracker, transport):
        tracker = make_tracker(http_method="GET")

        result = tracker.send_event("Cat", "Act", "x" * 2100)

        assert result is None
        assert transport.requests == []
        assert "2000" in tracker.get_error_message()

    def test_error_message_overwritten(self, make_tracker):
        tracker = make_tracker(http_method="GET")
        tracker.send_event("Cat", "Act", "x" * 2100)
        first = tracker.get_error_message()
        tracker.send_event("Cat", "Act", "x" * 3100)

        assert tracker.get_error_message() != first
        assert tracker.get_error_message().count("bytes long") == 1

    def test_post_allows_what_get_rejects(self, tracker, transport):
        assert tracker.send_event("Cat", "Act", "x" * 2100) is not None
        assert len(transport.requests) == 1


    def test_cache_buster_counts_toward_get_limit(self, make_tracker, transport):
        base = encode_payload(
            build_payload(TID, CID, EventHit("Cat", "Act", "x").to_params())
        )
        # Label length that puts the URL exactly at the limit without z.
        label = "x" * (MAX_GET_URL_LENGTH - len(MEASUREMENT_PROTOCOL_URL) - len(base))

        plain = make_tracker(http_method="GET")
        assert plain.send_event("Cat", "Act", label) is not None
        assert len(str(transport.requests[0].url)) == MAX_GET_URL_LENGTH

        busted = make_tracker(
            http_method="GET", use_cache_buster=True, rng=random.Random(5)
        )
        assert busted.send_event("Cat", "Act", label) is None
        assert len(transport.requests) == 1
        assert "2017" in busted.get_error_message()

class TestLifecycle:
    def test_context_manager_closes_owned_client(self):
        with MeasurementProtocolTracker(TID, CID) as tracker:
            client = tracker._client
        assert client.is_closed

    def test_injected_client_left_open(self, tracker):
        tracker.close()
        assert not tracker._client.is_closed

#!/usr/bin/env python3
"""
Hit Demo — one of every hit type
=================================

Sends an event, pageview, transaction + item, social action, timings
and an exception through the Measurement Protocol, with a custom
dimension and metric attached to the first hit.

Hits go to the validation endpoint by default so nothing lands in a
real property; set MP_ENDPOINT to the production collect URL to send
for real.

Run:
    GOOGLEANALYTICS_ACCOUNT=UA-12345-1 python examples/send_hits_demo.py
"""

from __future__ import annotations

import logging
import os

from mp_analytics import MeasurementProtocolTracker

ENDPOINT = os.environ.get(
    "MP_ENDPOINT", "https://www.google-analytics.com/debug/collect"
)


def show(label: str, tracker: MeasurementProtocolTracker, response) -> None:
    if response is None:
        print(f"   {label:<14} REJECTED  {tracker.get_error_message()}")
        return
    print(f"   {label:<14} {response.status_code}  {response.text[:60]!r}")


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    print("=" * 70)
    print("  MEASUREMENT PROTOCOL — hit demo")
    print("=" * 70)

    with MeasurementProtocolTracker(
        anonymize_ip=True,
        endpoint=ENDPOINT,
        user_agent="mp-analytics-demo/0.1",
    ) as tracker:
        print(f"\n   tracking id: {tracker.tracking_id}")
        print(f"   client id:   {tracker.client_id}\n")

        tracker.set_dimensions({"cd1": "demo"})
        tracker.set_metrics({"cm1": 450})
        show("event", tracker, tracker.send_event("Videos", "play", "Demo", 42))
        show("pageview", tracker, tracker.send_pageview("/demo", "Demo page"))
        show(
            "transaction",
            tracker,
            tracker.send_transaction("T-1001", "Demo Shop", 24.5, 4.0, 2.1, "USD"),
        )
        show("item", tracker, tracker.send_item("T-1001", "Socks", 10.25, 2, "SK-01"))
        show("social", tracker, tracker.send_social_action("facebook", "like", "/demo"))
        show("timing", tracker, tracker.send_timing_data(page_load=3200, dns=45))
        show(
            "user timing",
            tracker,
            tracker.send_user_timing_data("loader", "json", 180),
        )
        show("exception", tracker, tracker.send_exception("DemoError", False))
        show("too big", tracker, tracker.send_event("Videos", "play", "x" * 9000))

    print("\nDemo complete.")


if __name__ == "__main__":
    main()

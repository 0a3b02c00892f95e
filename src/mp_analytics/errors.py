"""Exceptions raised by the Measurement Protocol tracker."""

from __future__ import annotations


class MeasurementProtocolError(Exception):
    """Base class for all mp_analytics errors."""


class InvalidTrackingIdError(MeasurementProtocolError, ValueError):
    """The resolved tracking ID does not look like ``UA-<digits>-<digit>``."""

    def __init__(self, tracking_id: object) -> None:
        self.tracking_id = tracking_id
        super().__init__(f"Invalid Google Analytics tracking ID: {tracking_id!r}")


class PayloadTooLargeError(MeasurementProtocolError):
    """A hit would exceed the collection endpoint's size limits.

    Never raised out of the tracker's public API; the message is stored
    on the tracker and the send returns ``None`` instead.
    """

    def __init__(self, message: str, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(message)

"""Measurement Protocol hit types and data model.

Each hit dataclass maps its fields onto the protocol's abbreviated
parameter names.  Required fields are always sent; optional fields are
dropped when empty: falsy values and the string ``"0"`` are never
transmitted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class HitType(str, Enum):
    """Values of the ``t`` parameter."""

    EVENT = "event"
    PAGEVIEW = "pageview"
    TRANSACTION = "transaction"
    ITEM = "item"
    SOCIAL = "social"
    TIMING = "timing"
    EXCEPTION = "exception"


def _is_empty(value: Any) -> bool:
    return not value or value == "0"


# ---------------------------------------------------------------------------
# Hit data classes
# ---------------------------------------------------------------------------


class Hit:
    """Base for all hits.

    Subclasses declare ``hit_type`` plus two ``(attribute, key)`` tables:
    ``_required`` (always emitted) and ``_optional`` (emitted if truthy).
    """

    hit_type: ClassVar[HitType]
    _required: ClassVar[Tuple[Tuple[str, str], ...]] = ()
    _optional: ClassVar[Tuple[Tuple[str, str], ...]] = ()

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"t": self.hit_type.value}
        for attr, key in self._required:
            params[key] = getattr(self, attr)
        for attr, key in self._optional:
            value = getattr(self, attr)
            if not _is_empty(value):
                params[key] = value
        return params


@dataclass
class EventHit(Hit):
    hit_type: ClassVar[HitType] = HitType.EVENT
    _required = (("category", "ec"), ("action", "ea"))
    _optional = (("label", "el"), ("value", "ev"))

    category: str
    action: str
    label: Optional[str] = None
    value: Optional[int] = None


@dataclass
class PageviewHit(Hit):
    hit_type: ClassVar[HitType] = HitType.PAGEVIEW
    _optional = (
        ("doc_path", "dp"),
        ("doc_title", "dt"),
        ("doc_host", "dh"),
        ("doc_location", "dl"),
        ("content_description", "cd"),
    )

    doc_path: Optional[str] = None
    doc_title: Optional[str] = None
    doc_host: Optional[str] = None
    doc_location: Optional[str] = None
    content_description: Optional[str] = None


@dataclass
class TransactionHit(Hit):
    """An e-commerce transaction; amounts are sent as given."""

    hit_type: ClassVar[HitType] = HitType.TRANSACTION
    _required = (("transaction_id", "ti"),)
    _optional = (
        ("affiliation", "ta"),
        ("revenue", "tr"),
        ("shipping", "ts"),
        ("tax", "tt"),
        ("currency", "cu"),
    )

    transaction_id: str
    affiliation: Optional[str] = None
    revenue: Optional[float] = None
    shipping: Optional[float] = None
    tax: Optional[float] = None
    currency: Optional[str] = None


@dataclass
class ItemHit(Hit):
    """One line item belonging to a transaction."""

    hit_type: ClassVar[HitType] = HitType.ITEM
    _required = (("transaction_id", "ti"), ("name", "in"))
    _optional = (
        ("price", "ip"),
        ("quantity", "iq"),
        ("code", "ic"),
        ("category", "iv"),
        ("currency", "cu"),
    )

    transaction_id: str
    name: str
    price: Optional[float] = None
    quantity: Optional[int] = None
    code: Optional[str] = None
    category: Optional[str] = None
    currency: Optional[str] = None


@dataclass
class SocialHit(Hit):
    hit_type: ClassVar[HitType] = HitType.SOCIAL
    _required = (("network", "sn"), ("action", "sa"), ("target", "st"))

    network: str  # e.g. "facebook"
    action: str  # e.g. "like"
    target: str  # e.g. "http://www.example.com/likable-page"


@dataclass
class TimingHit(Hit):
    """Browser/page timing, all values in milliseconds."""

    hit_type: ClassVar[HitType] = HitType.TIMING
    _optional = (
        ("page_load", "plt"),
        ("dns", "dns"),
        ("page_download", "pdt"),
        ("redirect", "rrt"),
        ("tcp_connect", "tcp"),
        ("server_response", "srt"),
    )

    page_load: Optional[int] = None
    dns: Optional[int] = None
    page_download: Optional[int] = None
    redirect: Optional[int] = None
    tcp_connect: Optional[int] = None
    server_response: Optional[int] = None


@dataclass
class UserTimingHit(Hit):
    hit_type: ClassVar[HitType] = HitType.TIMING
    _optional = (
        ("category", "utc"),
        ("var_name", "utv"),
        ("time", "utt"),
        ("label", "utl"),
    )

    category: Optional[str] = None
    var_name: Optional[str] = None
    time: Optional[int] = None
    label: Optional[str] = None


@dataclass
class ExceptionHit(Hit):
    hit_type: ClassVar[HitType] = HitType.EXCEPTION
    _optional = (("description", "exd"),)

    description: Optional[str] = None
    is_fatal: bool = True

    def to_params(self) -> Dict[str, Any]:
        params = super().to_params()
        params["exf"] = 1 if self.is_fatal else 0
        return params

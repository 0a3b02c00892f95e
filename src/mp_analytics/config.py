"""Narrow collaborator interfaces for configuration and cookies.

The tracker never reaches into a web framework or a settings module
directly.  Callers hand it objects satisfying these protocols instead.
"""

from __future__ import annotations

import os
from typing import Mapping, Optional, Protocol, runtime_checkable

# Config key consulted when no tracking ID is passed to the tracker.
TRACKING_ID_CONFIG_KEY = "googleanalytics_account"

# First-party cookie set by analytics.js.
GA_COOKIE_NAME = "_ga"


@runtime_checkable
class ConfigProvider(Protocol):
    def get(self, key: str) -> Optional[str]: ...


@runtime_checkable
class CookieReader(Protocol):
    def get(self, name: str) -> Optional[str]: ...


class EnvironConfigProvider:
    """Read config values from environment variables.

    Keys are upper-cased and prefixed, so with the default empty prefix
    ``googleanalytics_account`` is read from ``GOOGLEANALYTICS_ACCOUNT``.
    """

    def __init__(self, prefix: str = "", environ: Optional[Mapping[str, str]] = None):
        self.prefix = prefix
        self._environ = environ if environ is not None else os.environ

    def env_name(self, key: str) -> str:
        return f"{self.prefix}{key}".upper()

    def get(self, key: str) -> Optional[str]:
        return self._environ.get(self.env_name(key)) or None


class MappingCookieReader:
    """Expose a plain ``{name: value}`` dict of request cookies."""

    def __init__(self, cookies: Optional[Mapping[str, str]] = None):
        self._cookies = dict(cookies or {})

    def get(self, name: str) -> Optional[str]:
        return self._cookies.get(name) or None

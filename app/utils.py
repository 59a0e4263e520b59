"""Utility helpers for the resolver service."""

from __future__ import annotations

import math
import re
from typing import Any
from urllib.parse import urlparse


CATALOG_ID_RE = re.compile(r"^[A-Za-z0-9-]+$")


def parse_episode_number(value: Any) -> float | None:
    """Return ``value`` as a finite float, or ``None`` when it is not numeric.

    Upstream listings mix integers, floats and numeric strings for the same
    field, so every comparison goes through this helper.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def normalize_episode_number(number: float) -> int | float:
    """Collapse integral floats to ``int`` so ``12.0`` is reported as ``12``."""

    if float(number).is_integer():
        return int(number)
    return number


def unescape_slashes(value: str | None) -> str:
    """Replace JSON-escaped ``\\/`` sequences with plain forward slashes."""

    if not value:
        return ""
    return value.replace("\\/", "/")


def last_path_segment(url: str | None) -> str | None:
    """Return the last non-empty path segment of ``url``."""

    if not url:
        return None
    path = urlparse(url.strip()).path
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return None
    return segments[-1]


def is_valid_catalog_id(value: str | None) -> bool:
    return bool(value) and CATALOG_ID_RE.match(value) is not None


def host_matches(url: str | None, host: str) -> bool:
    """Return whether ``url`` points at ``host`` or one of its subdomains."""

    if not url:
        return False
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    host = host.lower()
    return hostname == host or hostname.endswith(f".{host}")

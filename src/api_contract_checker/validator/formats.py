"""String formats checked during schema validation.

``FORMAT_CHECKER`` starts empty and only knows the formats registered
here; any other ``format`` value is accepted as-is.
"""

import ipaddress
import re
from datetime import date, datetime
from typing import Any
from urllib.parse import urlsplit

from jsonschema import FormatChecker

FORMAT_CHECKER = FormatChecker(formats=())

UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\Z"
)
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+\Z")
DATE_TIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2})(?::(\d{2})(\.\d+)?)?"
    r"(Z|z|[+-]\d{2}:\d{2})?\Z"
)


@FORMAT_CHECKER.checks("uuid")
def is_uuid(value: Any) -> bool:
    if not isinstance(value, str):
        return True
    return UUID_RE.match(value) is not None


@FORMAT_CHECKER.checks("email")
def is_email(value: Any) -> bool:
    if not isinstance(value, str):
        return True
    return EMAIL_RE.match(value) is not None


@FORMAT_CHECKER.checks("date-time")
def is_date_time(value: Any) -> bool:
    """A parseable timestamp with a literal ``T`` separator (no date-only)."""
    if not isinstance(value, str):
        return True
    m = DATE_TIME_RE.match(value)
    if m is None:
        return False
    year, month, day, hour, minute, second = (int(g or 0) for g in m.groups()[:6])
    try:
        datetime(year, month, day, hour, minute, second)
    except ValueError:
        return False
    offset = m.group(8)
    if offset and offset[0] in "+-":
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        return hours < 24 and minutes < 60
    return True


@FORMAT_CHECKER.checks("date")
def is_date(value: Any) -> bool:
    if not isinstance(value, str):
        return True
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


@FORMAT_CHECKER.checks("ipv4")
def is_ipv4(value: Any) -> bool:
    if not isinstance(value, str):
        return True
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


@FORMAT_CHECKER.checks("ipv6")
def is_ipv6(value: Any) -> bool:
    if not isinstance(value, str):
        return True
    try:
        ipaddress.IPv6Address(value)
    except ValueError:
        return False
    return True


@FORMAT_CHECKER.checks("uri")
def is_uri(value: Any) -> bool:
    if not isinstance(value, str):
        return True
    parts = urlsplit(value)
    return bool(parts.scheme) and bool(parts.netloc or parts.path)

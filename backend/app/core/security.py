"""Input Security — allow-listing, id sanitization and pagination clamping.

Invariants:
    - pick_allowed_fields never returns a key outside the allow-list
    - sanitize_id returns a canonical UUID string or None, never raises
    - page_request always yields page >= 1 and 1 <= limit <= max_limit
    - Malformed numeric query input falls back to defaults instead of failing

Design Decisions:
    - Clamp, don't reject, pagination input: list endpoints stay usable with sloppy clients
    - sanitize_id returns None instead of raising: the caller owns the resource-specific message
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable
from uuid import UUID

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def pick_allowed_fields(data: dict | None, allowed: Iterable[str]) -> dict:
    """Return only allow-listed keys that are present in data."""
    if not data:
        return {}
    return {key: data[key] for key in allowed if key in data}


def sanitize_id(value: Any) -> str | None:
    """Canonical id string for a well-formed UUID, else None."""
    if isinstance(value, UUID):
        return str(value)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return str(UUID(value.strip()))
    except ValueError:
        return None


def parse_int(value: Any, default: int) -> int:
    """Lenient integer parse; anything unparseable yields default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return default
    return parsed or default


def parse_float(value: Any) -> float | None:
    """Float parse that rejects NaN/inf and non-numeric strings."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return parsed


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_request(
    page: Any = None, limit: Any = None,
    default_limit: int = 20, max_limit: int = 100,
) -> PageRequest:
    """Clamp raw page/limit query values into a usable PageRequest."""
    return PageRequest(
        page=max(1, parse_int(page, 1)),
        limit=clamp(parse_int(limit, default_limit), 1, max_limit),
    )


def build_pagination(request: PageRequest, total: int) -> dict:
    return {
        "page": request.page,
        "limit": request.limit,
        "total": total,
        "pages": math.ceil(total / request.limit) if total else 0,
    }


def is_valid_currency_code(code: Any) -> bool:
    return isinstance(code, str) and bool(_CURRENCY_RE.match(code))


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user search text matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parse_iso_date(value: Any) -> date | None:
    """ISO date or datetime string -> date; None when unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None

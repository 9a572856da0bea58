"""Document Numbers — human-readable sequential identifiers per tenant.

Invariants:
    - Format PREFIX-PERIOD-NNNN (period optional), sequence zero-padded to 4 digits
    - next_sequence derives from the highest existing number, so gaps never reuse a number
"""

from datetime import date


def invoice_period(on: date) -> str:
    return on.strftime("%Y%m")


def year_period(on: date) -> str:
    return on.strftime("%Y")


def format_number(prefix: str, sequence: int, period: str | None = None) -> str:
    if period:
        return f"{prefix}-{period}-{sequence:04d}"
    return f"{prefix}-{sequence:04d}"


def next_sequence(latest_number: str | None) -> int:
    """1 + numeric suffix of the latest number, or 1 when none/unparseable."""
    if not latest_number:
        return 1
    suffix = latest_number.rsplit("-", 1)[-1]
    return int(suffix) + 1 if suffix.isdigit() else 1

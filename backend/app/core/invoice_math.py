"""Invoice Math — due dates, totals and payment application.

Invariants:
    - subtotal = Σ quantity × unit_price
    - discount applied BEFORE VAT; fixed discounts capped at subtotal
    - total = taxable + VAT; retainer capped at total
    - balance_due = total - amount_paid - retainer_applied, never below 0
    - status after payment: paid when balance_due <= 0, else partial

Design Decisions:
    - Floats rounded at each persisted figure (2 decimals) rather than Decimal:
      amounts round-trip through JSON columns and SQLite in tests
"""

import calendar
from dataclasses import asdict, dataclass
from datetime import date, timedelta

from app.core.domain_types import DiscountType, InvoiceStatus

PAYMENT_TERMS_DAYS = {
    "due_on_receipt": 0,
    "net_7": 7,
    "net_15": 15,
    "net_30": 30,
    "net_45": 45,
    "net_60": 60,
    "net_90": 90,
}
PAYMENT_TERMS = (*PAYMENT_TERMS_DAYS, "eom")
DEFAULT_PAYMENT_TERMS = "net_30"

PAYABLE_STATUSES = (
    InvoiceStatus.SENT.value, InvoiceStatus.VIEWED.value,
    InvoiceStatus.PARTIAL.value, InvoiceStatus.OVERDUE.value,
)
OVERDUE_CANDIDATE_STATUSES = (
    InvoiceStatus.SENT.value, InvoiceStatus.VIEWED.value, InvoiceStatus.PARTIAL.value,
)


def compute_due_date(issue_date: date, payment_terms: str | None) -> date:
    terms = payment_terms or DEFAULT_PAYMENT_TERMS
    if terms == "eom":
        last_day = calendar.monthrange(issue_date.year, issue_date.month)[1]
        return issue_date.replace(day=last_day)
    return issue_date + timedelta(days=PAYMENT_TERMS_DAYS.get(terms, 30))


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: float
    discount_amount: float
    taxable_amount: float
    vat_amount: float
    total_amount: float
    retainer_applied: float
    balance_due: float

    def as_dict(self) -> dict:
        return asdict(self)


def compute_totals(
    items: list[dict],
    vat_rate: float,
    discount_type: str | None = None,
    discount_value: float = 0.0,
    retainer_applied: float = 0.0,
    amount_paid: float = 0.0,
) -> InvoiceTotals:
    subtotal = round(
        sum(float(i["quantity"]) * float(i["unit_price"]) for i in items), 2,
    )
    if discount_type == DiscountType.PERCENTAGE.value:
        discount = subtotal * min(max(discount_value, 0.0), 100.0) / 100
    elif discount_type == DiscountType.FIXED.value:
        discount = min(max(discount_value, 0.0), subtotal)
    else:
        discount = 0.0
    discount = round(discount, 2)
    taxable = round(subtotal - discount, 2)
    vat = round(taxable * vat_rate / 100, 2)
    total = round(taxable + vat, 2)
    retainer = round(min(max(retainer_applied, 0.0), total), 2)
    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount,
        taxable_amount=taxable,
        vat_amount=vat,
        total_amount=total,
        retainer_applied=retainer,
        balance_due=balance_due(total, amount_paid, retainer),
    )


def balance_due(total: float, amount_paid: float, retainer_applied: float) -> float:
    return max(round(total - amount_paid - retainer_applied, 2), 0.0)


def status_after_payment(new_balance_due: float) -> str:
    if new_balance_due <= 0:
        return InvoiceStatus.PAID.value
    return InvoiceStatus.PARTIAL.value


def is_overdue(status: str, due_date: date | None, today: date) -> bool:
    return (
        status in OVERDUE_CANDIDATE_STATUSES
        and due_date is not None
        and due_date < today
    )

"""Billing Schemas — invoices, payments and referral sub-documents.

Invariants:
    - Invoice items: quantity > 0, unit_price >= 0, at least one item on create
    - Percentage discounts stay within 0..100
    - Payment amounts are strictly positive
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from app.core.invoice_math import PAYMENT_TERMS
from app.schemas.common import ORMResponse, RequestModel

PaymentTerms = Literal[PAYMENT_TERMS]
DiscountKind = Literal["percentage", "fixed"]


# ─── Invoices ───────────────────────────────────────────────────

class InvoiceItem(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    quantity: float = Field(gt=0)
    unit_price: float = Field(ge=0)


class _DiscountCheck(RequestModel):
    @model_validator(mode="after")
    def percentage_in_range(self):
        if self.discount_type == "percentage" and (self.discount_value or 0) > 100:
            raise ValueError("Percentage discount must be between 0 and 100")
        return self


class InvoiceCreate(_DiscountCheck):
    client_id: str | None = Field(None, max_length=64)
    client_name: str = Field(min_length=1, max_length=200)
    case_id: str | None = Field(None, max_length=64)
    issue_date: date | None = None
    payment_terms: PaymentTerms = "net_30"
    currency: str = Field("SAR", pattern=r"^[A-Z]{3}$")
    items: list[InvoiceItem] = Field(min_length=1)
    discount_type: DiscountKind | None = None
    discount_value: float = Field(0.0, ge=0)
    vat_rate: float | None = Field(None, ge=0, le=100)
    retainer_applied: float = Field(0.0, ge=0)
    notes: str | None = Field(None, max_length=5000)


class InvoiceUpdate(_DiscountCheck):
    client_name: str | None = Field(None, min_length=1, max_length=200)
    case_id: str | None = Field(None, max_length=64)
    issue_date: date | None = None
    payment_terms: PaymentTerms | None = None
    items: list[InvoiceItem] | None = Field(None, min_length=1)
    discount_type: DiscountKind | None = None
    discount_value: float | None = Field(None, ge=0)
    vat_rate: float | None = Field(None, ge=0, le=100)
    retainer_applied: float | None = Field(None, ge=0)
    notes: str | None = Field(None, max_length=5000)


class PaymentCreate(RequestModel):
    amount: float = Field(gt=0)
    method: Literal["bank_transfer", "cash", "card", "cheque", "other"] = "bank_transfer"
    reference: str | None = Field(None, max_length=120)
    paid_on: date | None = Field(None, alias="date")


class InvoiceApprove(RequestModel):
    notes: str | None = Field(None, max_length=2000)
    send: bool = False


class InvoiceReject(RequestModel):
    reason: str = Field(min_length=1, max_length=2000)


class RetainerApply(RequestModel):
    amount: float = Field(gt=0)
    retainer_id: str | None = Field(None, max_length=64)


class InvoiceVoid(RequestModel):
    reason: str = Field(min_length=1, max_length=1000)


class InvoiceResponse(ORMResponse):
    invoice_number: str
    client_id: str | None
    client_name: str
    case_id: str | None
    status: str
    issue_date: date
    due_date: date
    payment_terms: str
    currency: str
    items: list
    subtotal: float
    discount_type: str | None
    discount_value: float
    discount_amount: float
    taxable_amount: float
    vat_rate: float
    vat_amount: float
    total_amount: float
    amount_paid: float
    retainer_applied: float
    balance_due: float
    notes: str | None
    payments: list
    history: list
    sent_at: datetime | None
    paid_at: datetime | None
    voided_at: datetime | None
    void_reason: str | None
    approval: dict | None = None


# ─── Referrals ──────────────────────────────────────────────────

class ReferralResponse(ORMResponse):
    name: str
    name_ar: str | None
    description: str | None
    type: str
    status: str
    external_source: str | None
    has_fee_agreement: bool
    fee_type: str
    fee_percentage: float | None
    fee_fixed_amount: float | None
    fee_tiers: list
    fee_notes: str | None
    currency: str
    tags: list
    rating: int | None
    priority: str
    notes: str | None
    next_follow_up_date: date | None
    total_referrals: int
    successful_referrals: int
    leads: list
    conversions: list
    payments: list
    total_fees_paid: float


class FeeCalculationRequest(RequestModel):
    case_value: float = Field(ge=0)

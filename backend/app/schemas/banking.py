"""Banking Schemas — accounts, transactions, ledger entries, reconciliations, matches, rules.

Invariants:
    - Amounts are positive; direction is carried by type (credit | debit)
    - Currency codes are upper-case ISO 4217 (^[A-Z]{3}$)
    - Reconciliation creation is NOT modelled here: its route validates a raw
      allow-listed body to produce field-specific messages

Design Decisions:
    - Literal types for closed vocabularies: Pydantic rejects unknown values with a 400
"""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.common import ORMResponse, RequestModel

TxType = Literal["credit", "debit"]
AccountType = Literal["checking", "savings", "credit_card", "cash", "other"]


# ─── Bank accounts ──────────────────────────────────────────────

class BankAccountCreate(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    bank_name: str | None = Field(None, max_length=200)
    account_number: str | None = Field(None, max_length=64)
    account_type: AccountType = "checking"
    currency: str = Field("SAR", pattern=r"^[A-Z]{3}$")
    opening_balance: float = 0.0


class BankAccountUpdate(RequestModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    bank_name: str | None = Field(None, max_length=200)
    account_number: str | None = Field(None, max_length=64)
    account_type: AccountType | None = None
    is_active: bool | None = None


class BankAccountResponse(ORMResponse):
    name: str
    bank_name: str | None
    account_number: str | None
    account_type: str
    currency: str
    opening_balance: float
    current_balance: float
    is_active: bool
    last_reconciled_date: date | None
    last_reconciled_balance: float | None


# ─── Transactions & ledger ──────────────────────────────────────

class BankTransactionCreate(RequestModel):
    account_id: UUID
    date: date
    amount: float = Field(gt=0)
    type: TxType
    description: str = Field("", max_length=500)
    reference: str = Field("", max_length=120)
    category: str | None = Field(None, max_length=80)


class BankTransactionResponse(ORMResponse):
    account_id: UUID
    transaction_date: date
    amount: float
    type: str
    description: str
    reference: str
    category: str | None
    source: str
    import_batch_id: str | None
    is_matched: bool
    is_flagged: bool
    reconciliation_id: UUID | None
    is_reconciled: bool


class LedgerEntryCreate(RequestModel):
    account_id: UUID | None = None
    date: date
    amount: float = Field(gt=0)
    type: TxType
    description: str = Field("", max_length=500)
    reference: str = Field("", max_length=120)
    source_type: Literal["invoice_payment", "expense", "transfer", "manual"] = "manual"


class LedgerEntryResponse(ORMResponse):
    account_id: UUID | None
    entry_date: date
    amount: float
    type: str
    description: str
    reference: str
    source_type: str
    is_matched: bool


# ─── Reconciliations ────────────────────────────────────────────

class ReconciliationResponse(ORMResponse):
    account_id: UUID
    start_date: date
    end_date: date
    opening_balance: float
    statement_balance: float
    closing_balance: float
    cleared_credits: float
    cleared_debits: float
    difference: float
    status: str
    completed_at: datetime | None
    completed_by: str | None
    cancelled_at: datetime | None
    cancellation_reason: str | None


class ReconciliationCancel(RequestModel):
    reason: str | None = Field(None, max_length=1000)


# ─── Matches ────────────────────────────────────────────────────

class MatchReject(RequestModel):
    reason: str | None = Field(None, max_length=1000)


class SplitLine(BaseModel):
    ledger_entry_id: UUID
    amount: float = Field(gt=0)


class SplitMatchCreate(RequestModel):
    bank_transaction_id: UUID
    splits: list[SplitLine] = Field(min_length=1)


class BankMatchResponse(ORMResponse):
    account_id: UUID
    bank_transaction_id: UUID
    ledger_entry_id: UUID | None
    match_type: str
    status: str
    score: float
    reasons: list
    splits: list
    rule_id: UUID | None
    rejection_reason: str | None
    decided_by: str | None
    decided_at: datetime | None


# ─── Match rules ────────────────────────────────────────────────

class MatchRuleResponse(ORMResponse):
    name: str
    description: str | None
    is_active: bool
    priority: int
    conditions: list
    action: dict
    bank_account_ids: list
    apply_to_future_transactions: bool
    times_applied: int


class RuleTestRequest(RequestModel):
    description: str = ""
    reference: str = ""
    amount: float = 0.0
    type: TxType = "debit"


# ─── Currency ───────────────────────────────────────────────────

class ExchangeRateCreate(RequestModel):
    from_currency: str = Field(pattern=r"^[A-Z]{3}$")
    to_currency: str = Field(pattern=r"^[A-Z]{3}$")
    rate: float = Field(gt=0)
    effective_date: date | None = None

    @field_validator("to_currency")
    @classmethod
    def distinct_currencies(cls, v: str, info) -> str:
        if v == info.data.get("from_currency"):
            raise ValueError("from_currency and to_currency must differ")
        return v


class ExchangeRateResponse(ORMResponse):
    base_currency: str
    target_currency: str
    rate: float
    effective_date: date
    source: str


class ConvertRequest(RequestModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, populate_by_name=True)

    amount: float = Field(gt=0)
    from_currency: str = Field(alias="from", pattern=r"^[A-Z]{3}$")
    to_currency: str = Field(alias="to", pattern=r"^[A-Z]{3}$")
    on_date: date | None = Field(None, alias="date")

"""Boundary Protocols — contracts for collaborators whose internals live elsewhere.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Routes depend on these Protocols, concrete classes are wired by FastAPI dependencies
    - Tests replace collaborators via app.dependency_overrides

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Matching candidates are plain dataclasses: the matcher never sees ORM rows
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol


@dataclass(frozen=True)
class MatchCandidate:
    """A ledger entry the matcher may pair with a bank transaction."""
    id: str
    date: date
    amount: float
    type: str
    description: str = ""
    reference: str = ""


@dataclass(frozen=True)
class ScoredCandidate:
    entry_id: str
    score: float
    amount_exact: bool
    reasons: tuple[str, ...] = ()


class TransactionMatcher(Protocol):
    """Scores ledger entries against one bank transaction, best first."""
    def candidates(
        self, transaction: MatchCandidate, entries: list[MatchCandidate],
    ) -> list[ScoredCandidate]: ...


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    scopes: tuple[str, ...] = ()
    external_account_id: str | None = None


class OAuthClient(Protocol):
    """Exchanges an authorization code for tokens at the provider."""
    async def exchange_code(
        self, provider: str, provider_config: dict, code: str, redirect_uri: str,
    ) -> TokenSet: ...

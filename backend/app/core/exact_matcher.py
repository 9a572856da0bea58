"""Exact Matcher — default TransactionMatcher: same amount, same direction, nearby date.

Invariants:
    - Only entries with identical type and amount (to the cent) are candidates
    - Date distance capped at DATE_WINDOW_DAYS; score = 100 - 10 per day apart
    - Results sorted by score descending, ties broken by reference equality
"""

from app.core.boundary_protocols import MatchCandidate, ScoredCandidate

DATE_WINDOW_DAYS = 3


class ExactAmountMatcher:
    def candidates(
        self, transaction: MatchCandidate, entries: list[MatchCandidate],
    ) -> list[ScoredCandidate]:
        scored = []
        for entry in entries:
            if entry.type != transaction.type:
                continue
            if abs(entry.amount - transaction.amount) >= 0.005:
                continue
            days_apart = abs((entry.date - transaction.date).days)
            if days_apart > DATE_WINDOW_DAYS:
                continue
            reasons = ["amount_exact"]
            score = 100.0 - 10 * days_apart
            if days_apart == 0:
                reasons.append("same_date")
            if transaction.reference and entry.reference == transaction.reference:
                reasons.append("reference_match")
            scored.append(ScoredCandidate(
                entry_id=entry.id, score=score,
                amount_exact=True, reasons=tuple(reasons),
            ))
        scored.sort(key=lambda c: (c.score, "reference_match" in c.reasons), reverse=True)
        return scored

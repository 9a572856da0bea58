"""Exact Matcher — tests for candidate filtering and scoring."""

from datetime import date

from app.core.boundary_protocols import MatchCandidate
from app.core.exact_matcher import ExactAmountMatcher

TX = MatchCandidate(id="tx", date=date(2024, 3, 10), amount=500.0, type="credit", reference="R-1")


def _entry(entry_id, day, amount=500.0, tx_type="credit", reference=""):
    return MatchCandidate(
        id=entry_id, date=date(2024, 3, day), amount=amount, type=tx_type, reference=reference,
    )


def test_same_day_same_amount_scores_100():
    scored = ExactAmountMatcher().candidates(TX, [_entry("e1", 10)])
    assert scored[0].score == 100.0
    assert scored[0].amount_exact
    assert scored[0].reasons == ("amount_exact", "same_date")


def test_score_drops_per_day_apart():
    scored = ExactAmountMatcher().candidates(TX, [_entry("e1", 12)])
    assert scored[0].score == 80.0


def test_outside_window_type_or_amount_excluded():
    entries = [
        _entry("far", 20),
        _entry("wrong-type", 10, tx_type="debit"),
        _entry("wrong-amount", 10, amount=500.5),
    ]
    assert ExactAmountMatcher().candidates(TX, entries) == []


def test_best_candidate_first_with_reference_tiebreak():
    entries = [_entry("e1", 11), _entry("e2", 9, reference="R-1"), _entry("e3", 10)]
    scored = ExactAmountMatcher().candidates(TX, entries)
    assert [c.entry_id for c in scored] == ["e3", "e2", "e1"]
    assert "reference_match" in scored[1].reasons

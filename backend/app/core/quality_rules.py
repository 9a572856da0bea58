"""Quality Rules — inspection result evaluation and corrective action text limits.

Invariants:
    - Evaluation only looks at reading statuses (accepted/rejected/other)
    - accepted_qty/rejected_qty are reading counts, not sampled quantities
    - Finalized inspections never return to pending
"""

from app.core.domain_types import InspectionStatus

REFERENCE_TYPES = ("purchase_receipt", "delivery_note", "stock_entry", "production")
INSPECTION_TYPES = ("incoming", "outgoing", "in_process")
ACTION_TYPES = ("corrective", "preventive")
ACTION_TEXT_MIN = 10
ACTION_TEXT_MAX = 5000
AUTO_ACTION_TARGET_DAYS = 7

FINAL_STATUSES = (
    InspectionStatus.ACCEPTED.value,
    InspectionStatus.REJECTED.value,
    InspectionStatus.PARTIALLY_ACCEPTED.value,
)


def evaluate_inspection(readings: list[dict]) -> dict:
    accepted = sum(1 for r in readings if r.get("status") == "accepted")
    rejected = sum(1 for r in readings if r.get("status") == "rejected")
    if accepted and not rejected:
        status = InspectionStatus.ACCEPTED.value
    elif rejected and not accepted:
        status = InspectionStatus.REJECTED.value
    elif accepted and rejected:
        status = InspectionStatus.PARTIALLY_ACCEPTED.value
    else:
        status = InspectionStatus.PENDING.value
    return {"status": status, "accepted_qty": accepted, "rejected_qty": rejected}


def needs_corrective_action(status: str) -> bool:
    return status in (
        InspectionStatus.REJECTED.value, InspectionStatus.PARTIALLY_ACCEPTED.value,
    )


def readings_from_template(parameters: list[dict]) -> list[dict]:
    return [
        {
            "parameter": p["parameter"],
            "min_value": p.get("min_value"),
            "max_value": p.get("max_value"),
            "acceptance_criteria": p.get("acceptance_criteria"),
            "value": None,
            "status": "pending",
        }
        for p in parameters
    ]


def action_text_error(label: str, value: str | None) -> str | None:
    text = (value or "").strip()
    if not ACTION_TEXT_MIN <= len(text) <= ACTION_TEXT_MAX:
        return f"{label} must be between {ACTION_TEXT_MIN} and {ACTION_TEXT_MAX} characters"
    return None


def pass_fail_rates(accepted: int, rejected: int, partial: int) -> tuple[float, float]:
    """Percentages to 2 decimals over finalized inspections."""
    finalized = accepted + rejected + partial
    if not finalized:
        return 0.0, 0.0
    return (
        round(accepted / finalized * 100, 2),
        round(rejected / finalized * 100, 2),
    )

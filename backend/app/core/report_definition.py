"""Report Definitions — catalogue of reportable sources and definition validation.

Invariants:
    - Only catalogue sources/columns are ever queried (user input never names raw tables)
    - validate_report_definition collects ALL errors rather than failing fast
    - Row limit for execution: default 10000, hard max 50000
    - "contains" filters only target TEXT_COLUMNS
"""

REPORT_TYPES = ("table", "chart", "pivot", "funnel", "cohort", "dashboard")
REPORT_SCOPES = ("personal", "team", "global")
FILTER_OPERATORS = ("eq", "ne", "gt", "gte", "lt", "lte", "contains", "in")
EXPORT_FORMATS = ("csv", "json")
SCHEDULE_FREQUENCIES = ("daily", "weekly", "monthly")
SCHEDULE_FORMATS = ("pdf", "excel", "csv")
DEFAULT_ROW_LIMIT = 10_000
MAX_ROW_LIMIT = 50_000
MAX_NAME_LENGTH = 200

DATA_SOURCES: dict[str, tuple[str, ...]] = {
    "invoices": (
        "invoice_number", "client_id", "client_name", "case_id", "status",
        "issue_date", "due_date", "currency", "subtotal", "vat_amount",
        "total_amount", "amount_paid", "balance_due",
    ),
    "employees": (
        "employee_number", "first_name", "last_name", "gender", "job_title",
        "department", "employment_type", "status", "hire_date", "basic_salary",
    ),
    "leave_requests": (
        "request_number", "employee_id", "employee_name", "department",
        "leave_type", "start_date", "end_date", "total_days", "status",
    ),
    "cases": (
        "title", "client_id", "client_name", "category", "priority",
        "status", "outcome", "source", "start_date", "end_date",
    ),
    "bank_transactions": (
        "account_id", "transaction_date", "amount", "type", "description",
        "reference", "category", "is_matched", "is_reconciled",
    ),
    "referrals": (
        "name", "type", "status", "fee_type", "total_referrals",
        "successful_referrals", "total_fees_paid", "rating", "priority",
    ),
}

# Columns "contains" may target: ILIKE only applies to text
TEXT_COLUMNS: dict[str, frozenset[str]] = {
    "invoices": frozenset({
        "invoice_number", "client_id", "client_name", "case_id", "status", "currency",
    }),
    "employees": frozenset({
        "employee_number", "first_name", "last_name", "gender", "job_title",
        "department", "employment_type", "status",
    }),
    "leave_requests": frozenset({
        "request_number", "employee_name", "department", "leave_type", "status",
    }),
    "cases": frozenset({
        "title", "client_id", "client_name", "category", "priority", "status",
        "outcome", "source",
    }),
    "bank_transactions": frozenset({"type", "description", "reference", "category"}),
    "referrals": frozenset({"name", "type", "status", "fee_type", "priority"}),
}


def _source_name(source) -> str | None:
    if isinstance(source, str):
        return source
    if isinstance(source, dict):
        return source.get("name") or source.get("source")
    return None


def source_names(data_sources) -> list[str]:
    return [n for n in (_source_name(s) for s in data_sources or []) if n]


def _column_field(column) -> str | None:
    if isinstance(column, str):
        return column
    if isinstance(column, dict):
        return column.get("field")
    return None


def column_fields(columns) -> list[str]:
    return [f for f in (_column_field(c) for c in columns or []) if f]


def validate_report_definition(definition: dict) -> list[str]:
    errors: list[str] = []
    if "type" in definition and definition["type"] not in REPORT_TYPES:
        errors.append(f"Invalid report type: {definition['type']}")

    sources = definition.get("data_sources")
    if not isinstance(sources, list) or not sources:
        errors.append("At least one data source is required")
        return errors
    names = source_names(sources)
    unknown = [n for n in names if n not in DATA_SOURCES]
    if len(names) != len(sources) or unknown:
        errors.append(f"Unknown data source(s): {', '.join(unknown) or 'unnamed'}")
        return errors

    available = {c for n in names for c in DATA_SOURCES[n]}
    non_text = available - {c for n in names for c in TEXT_COLUMNS[n]}
    columns = definition.get("columns") or []
    if not isinstance(columns, list):
        errors.append("Columns must be an array")
        columns = []
    for field in column_fields(columns):
        if field not in available:
            errors.append(f"Unknown column: {field}")

    filters = definition.get("filters") or []
    if not isinstance(filters, list):
        errors.append("Filters must be an array")
        filters = []
    for i, f in enumerate(filters, start=1):
        if not isinstance(f, dict):
            errors.append(f"Filter {i} must be an object")
            continue
        if f.get("field") not in available:
            errors.append(f"Filter {i}: unknown field '{f.get('field')}'")
        if f.get("operator") not in FILTER_OPERATORS:
            errors.append(f"Filter {i}: invalid operator '{f.get('operator')}'")
        elif f.get("operator") == "contains" and f.get("field") in non_text:
            errors.append(f"Filter {i}: contains only applies to text fields")

    group_by = definition.get("group_by") or []
    if not isinstance(group_by, list):
        errors.append("group_by must be an array")
        group_by = []
    for field in group_by:
        if field not in available:
            errors.append(f"Unknown group_by field: {field}")
    return errors

"""Report Runner — executes a saved report definition against tenant-scoped tables.

Invariants:
    - The source name resolves through SOURCE_MODELS; columns through the catalogue
      in core.report_definition, so user input never names a raw table or column
    - Every query carries tenant_clause for the source model
    - Filter values are coerced to the column's Python type; bad values give 400
    - "contains" is LIKE-escaped and refused on non-text columns

Design Decisions:
    - Only the first data source is queried; joins across sources are not supported
    - Rows come back as JSON-ready dicts (dates ISO, ids as strings) for both
      the execute endpoint and the exporters
"""

import csv
import io
import json
import logging
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationFailedError
from app.core.report_definition import DATA_SOURCES, TEXT_COLUMNS, column_fields, source_names
from app.core.security import escape_like, parse_iso_date
from app.core.tenant import TenantContext
from app.models.bank_transaction import BankTransaction
from app.models.case import Case
from app.models.employee import Employee
from app.models.invoice import Invoice
from app.models.leave import LeaveRequest
from app.models.referral import Referral
from app.models.report_definition import ReportDefinition
from app.services.scoping import tenant_clause

logger = logging.getLogger(__name__)

SOURCE_MODELS = {
    "invoices": Invoice,
    "employees": Employee,
    "leave_requests": LeaveRequest,
    "cases": Case,
    "bank_transactions": BankTransaction,
    "referrals": Referral,
}


def _plain(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def _coerce(column, field: str, value):
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if value is None or isinstance(value, python_type):
        return value
    try:
        if python_type is bool:
            return str(value).lower() in ("1", "true", "yes")
        if python_type is date:
            parsed = parse_iso_date(value)
            if parsed is None:
                raise ValueError(value)
            return parsed
        if python_type is UUID:
            return UUID(str(value))
        return python_type(value)
    except (TypeError, ValueError):
        raise ValidationFailedError(f"Invalid filter value for {field}", field=field)


def _condition(model, field: str, operator: str, value, text_fields: frozenset[str]):
    column = getattr(model, field)
    if operator == "in":
        values = value if isinstance(value, list) else str(value).split(",")
        return column.in_([_coerce(column, field, v) for v in values])
    if operator == "contains":
        if field not in text_fields:
            raise ValidationFailedError(f"contains only applies to text fields: {field}", field=field)
        return column.ilike(f"%{escape_like(str(value))}%", escape="\\")
    value = _coerce(column, field, value)
    return {
        "eq": lambda: column == value,
        "ne": lambda: column != value,
        "gt": lambda: column > value,
        "gte": lambda: column >= value,
        "lt": lambda: column < value,
        "lte": lambda: column <= value,
    }[operator]()


def runtime_filters(source: str, params: dict) -> list[dict]:
    """Query parameters naming catalogue columns become equality filters."""
    known = DATA_SOURCES.get(source, ())
    return [
        {"field": k, "operator": "eq", "value": v}
        for k, v in params.items() if k in known
    ]


async def run_report(
    db: AsyncSession,
    tenant: TenantContext,
    report: ReportDefinition,
    extra_filters: list[dict],
    limit: int,
) -> dict:
    names = source_names(report.data_sources)
    if not names or names[0] not in SOURCE_MODELS:
        raise ValidationFailedError("Report has no valid data source", field="data_sources")
    source = names[0]
    model = SOURCE_MODELS[source]
    known = DATA_SOURCES[source]

    conditions = [tenant_clause(model, tenant)]
    for f in [*(report.filters or []), *extra_filters]:
        if f.get("field") in known:
            conditions.append(_condition(
                model, f["field"], f.get("operator", "eq"), f.get("value"), TEXT_COLUMNS[source],
            ))

    group_by = [g for g in report.group_by or [] if g in known]
    if group_by:
        group_columns = [getattr(model, g) for g in group_by]
        query = (
            select(*group_columns, func.count().label("count"))
            .where(*conditions)
            .group_by(*group_columns)
            .order_by(*group_columns)
        )
        columns = [*group_by, "count"]
    else:
        columns = [c for c in column_fields(report.columns) if c in known] or list(known)
        query = (
            select(*[getattr(model, c) for c in columns])
            .where(*conditions)
            .order_by(model.created_at.desc())
        )

    result = await db.execute(query.limit(limit))
    rows = [
        {name: _plain(value) for name, value in zip(columns, row)}
        for row in result.all()
    ]
    logger.info(
        f"Report {report.id} executed on {source}: {len(rows)} row(s)",
        extra=tenant.log_extra(),
    )
    return {"columns": columns, "rows": rows, "row_count": len(rows)}


def to_csv(result: dict) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=result["columns"])
    writer.writeheader()
    writer.writerows(result["rows"])
    return buffer.getvalue()


def to_json(result: dict) -> str:
    return json.dumps(result["rows"], ensure_ascii=False, indent=2)

"""Statement Parsing — turns CSV/OFX bank statement text into normalized rows.

Invariants:
    - Every parsed row has date (date), type (credit|debit), amount (> 0), description, reference
    - Zero-amount rows are skipped, never stored
    - A malformed row is reported in errors and never aborts the whole file
    - Duplicate = same amount and type within ±1 day of an existing row

Design Decisions:
    - stdlib csv.DictReader: statement files are small, no dataframe needed
    - OFX parsed with a tag regex: handles both SGML (unclosed tags) and XML flavours
"""

import csv
import io
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from app.core.domain_types import TransactionType

DATE_FORMATS = ("YYYY-MM-DD", "DD/MM/YYYY", "MM/DD/YYYY")

_NON_NUMERIC_RE = re.compile(r"[^\d.,-]")
_STMTTRN_RE = re.compile(r"<STMTTRN>(.*?)(?:</STMTTRN>|(?=<STMTTRN>)|(?=</BANKTRANLIST>))", re.S | re.I)
_OFX_TAG_RE = re.compile(r"<([A-Z0-9.]+)>([^<\r\n]*)", re.I)


@dataclass
class ParsedTransaction:
    date: date
    type: str
    amount: float
    description: str = ""
    reference: str = ""
    balance: float | None = None


@dataclass
class ParseResult:
    transactions: list[ParsedTransaction] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)


@dataclass
class CsvImportOptions:
    delimiter: str = ","
    has_header: bool = True
    skip_rows: int = 0
    date_format: str = "YYYY-MM-DD"
    column_mapping: dict[str, str] = field(default_factory=dict)
    debit_column: str | None = None
    credit_column: str | None = None


def parse_amount(raw) -> float:
    """Parse '1,234.50', 'SAR 99,5', '-12' etc. Unparseable input is 0."""
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return float(raw)
    if not raw:
        return 0.0
    cleaned = _NON_NUMERIC_RE.sub("", str(raw)).strip()
    if "," in cleaned and "." not in cleaned:
        cleaned = cleaned.replace(",", ".", 1)
    elif "," in cleaned:
        cleaned = cleaned.replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def parse_statement_date(raw: str, date_format: str = "YYYY-MM-DD") -> date:
    """Parse ISO dates first, then the configured day/month order."""
    text = (raw or "").strip()
    if not text:
        raise ValueError("Date field is required")
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    parts = re.split(r"[/\-.]", text)
    if len(parts) != 3:
        raise ValueError(f"Invalid date format: {text}")
    fmt = date_format.upper()
    if fmt == "DD/MM/YYYY":
        day, month, year = parts
    elif fmt == "MM/DD/YYYY":
        month, day, year = parts
    elif len(parts[0]) == 4:
        year, month, day = parts
    elif len(parts[2]) == 4:
        day, month, year = parts
    else:
        raise ValueError(f"Invalid date format: {text}")
    try:
        return date(int(year), int(month), int(day))
    except ValueError as e:
        raise ValueError(f"Invalid date format: {text}") from e


def _column(row: dict, mapping: dict, key: str) -> str | None:
    name = mapping.get(key)
    if name:
        return row.get(name)
    return row.get(key.capitalize(), row.get(key))


def parse_csv_row(row: dict, options: CsvImportOptions) -> ParsedTransaction | None:
    mapping = options.column_mapping
    tx_date = parse_statement_date(_column(row, mapping, "date") or "", options.date_format)

    amount = 0.0
    tx_type = TransactionType.DEBIT.value
    if options.debit_column and options.credit_column:
        debit = parse_amount(row.get(options.debit_column))
        credit = parse_amount(row.get(options.credit_column))
        if debit > 0:
            amount, tx_type = debit, TransactionType.DEBIT.value
        elif credit > 0:
            amount, tx_type = credit, TransactionType.CREDIT.value
    else:
        amount = parse_amount(_column(row, mapping, "amount"))
        tx_type = (
            TransactionType.DEBIT.value if amount < 0 else TransactionType.CREDIT.value
        )
        type_value = (_column(row, mapping, "type") or "").lower()
        if "debit" in type_value or "withdrawal" in type_value:
            tx_type = TransactionType.DEBIT.value
        elif "credit" in type_value or "deposit" in type_value:
            tx_type = TransactionType.CREDIT.value

    if amount == 0:
        return None

    raw_balance = _column(row, mapping, "balance")
    return ParsedTransaction(
        date=tx_date,
        type=tx_type,
        amount=round(abs(amount), 2),
        description=(_column(row, mapping, "description") or "").strip(),
        reference=(_column(row, mapping, "reference") or "").strip(),
        balance=parse_amount(raw_balance) if raw_balance else None,
    )


def parse_csv_statement(content: str, options: CsvImportOptions | None = None) -> ParseResult:
    """Parse a CSV statement. Row numbers in errors are 1-based data rows."""
    options = options or CsvImportOptions()
    lines = content.splitlines()[options.skip_rows:]
    stream = io.StringIO("\n".join(line for line in lines if line.strip()))
    if options.has_header:
        reader = csv.DictReader(stream, delimiter=options.delimiter, skipinitialspace=True)
        rows = [
            {(k or "").strip(): (v or "").strip() for k, v in r.items()} for r in reader
        ]
    else:
        headers = ["date", "description", "amount", "type", "reference", "balance"]
        rows = [
            dict(zip(headers, (c.strip() for c in r)))
            for r in csv.reader(stream, delimiter=options.delimiter)
        ]

    result = ParseResult()
    for index, row in enumerate(rows, start=1):
        try:
            parsed = parse_csv_row(row, options)
        except ValueError as e:
            result.errors.append({"row": index, "error": str(e)})
            continue
        if parsed:
            result.transactions.append(parsed)
    return result


def parse_ofx_date(raw: str) -> date:
    """OFX dates are YYYYMMDD with optional time and zone suffix."""
    text = (raw or "").strip()
    if len(text) < 8 or not text[:8].isdigit():
        raise ValueError(f"Invalid OFX date: {raw}")
    return datetime.strptime(text[:8], "%Y%m%d").date()


def parse_ofx_statement(content: str) -> ParseResult:
    result = ParseResult()
    for index, match in enumerate(_STMTTRN_RE.finditer(content), start=1):
        tags = {k.upper(): v.strip() for k, v in _OFX_TAG_RE.findall(match.group(1))}
        try:
            amount = float(tags.get("TRNAMT", ""))
            tx_date = parse_ofx_date(tags.get("DTPOSTED", ""))
        except ValueError as e:
            result.errors.append({"row": index, "error": str(e)})
            continue
        if amount == 0:
            continue
        result.transactions.append(ParsedTransaction(
            date=tx_date,
            type=(TransactionType.CREDIT.value if amount > 0 else TransactionType.DEBIT.value),
            amount=round(abs(amount), 2),
            description=tags.get("NAME") or tags.get("MEMO") or "",
            reference=tags.get("FITID") or tags.get("REFNUM") or "",
        ))
    return result


def is_duplicate(
    candidate: ParsedTransaction, existing: list[tuple[date, float, str]],
) -> bool:
    """True if an existing (date, amount, type) row sits within ±1 day."""
    window = timedelta(days=1)
    return any(
        abs(amount - candidate.amount) < 0.005
        and tx_type == candidate.type
        and abs(tx_date - candidate.date) <= window
        for tx_date, amount, tx_type in existing
    )


CSV_TEMPLATE = (
    "Date,Description,Amount,Type,Reference,Balance\n"
    "2024-01-15,Client retainer deposit,5000.00,credit,REF-001,15000.00\n"
    "2024-01-16,Court filing fee,-350.00,debit,REF-002,14650.00\n"
)

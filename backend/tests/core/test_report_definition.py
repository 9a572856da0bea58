"""Report Definitions — tests for definition validation against the source catalogue."""

from app.core.report_definition import (
    column_fields, source_names, validate_report_definition,
)


def test_valid_definition():
    definition = {
        "type": "table",
        "data_sources": ["invoices"],
        "columns": ["invoice_number", {"field": "total_amount", "label": "Total"}],
        "filters": [{"field": "status", "operator": "eq", "value": "paid"}],
        "group_by": ["status"],
    }
    assert validate_report_definition(definition) == []


def test_missing_data_source():
    assert validate_report_definition({"data_sources": []}) == [
        "At least one data source is required",
    ]


def test_unknown_data_source_stops_validation():
    errors = validate_report_definition({"data_sources": ["payroll"], "columns": ["x"]})
    assert errors == ["Unknown data source(s): payroll"]


def test_all_errors_collected():
    errors = validate_report_definition({
        "type": "gantt",
        "data_sources": [{"name": "cases"}],
        "columns": ["title", "salary"],
        "filters": [{"field": "status", "operator": "like"}, "bad"],
        "group_by": ["nope"],
    })
    assert errors == [
        "Invalid report type: gantt",
        "Unknown column: salary",
        "Filter 1: invalid operator 'like'",
        "Filter 2 must be an object",
        "Unknown group_by field: nope",
    ]


def test_source_and_column_helpers():
    assert source_names(["cases", {"source": "invoices"}, 7]) == ["cases", "invoices"]
    assert column_fields(["a", {"field": "b"}, {"label": "c"}]) == ["a", "b"]


def test_contains_only_on_text_columns():
    definition = {
        "data_sources": ["invoices"],
        "columns": ["client_name"],
        "filters": [
            {"field": "total_amount", "operator": "contains", "value": "1"},
            {"field": "client_name", "operator": "contains", "value": "Al"},
        ],
    }
    assert validate_report_definition(definition) == [
        "Filter 1: contains only applies to text fields",
    ]

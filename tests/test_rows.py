"""Tests for registry row parsing."""

import pytest

from redirect_engine.core.models import ProductDefinition, ValidationError
from redirect_engine.core.rows import (
    parse_enabled,
    parse_row,
    parse_tags,
    to_row,
    validate_name,
)


def test_parse_row_minimal():
    """Test a row with only required columns gets defaults."""
    product = parse_row({"name": "invoice", "folderId": "f1"})

    assert product == ProductDefinition(name="invoice", folder_id="f1")
    assert product.display_name == "invoice"
    assert product.category == "Uncategorized"


def test_parse_row_all_columns():
    """Test a fully populated row."""
    product = parse_row({
        "name": " invoice ",
        "folderId": "f1",
        "displayName": "Invoice Template",
        "enabled": "No",
        "description": "Monthly invoice",
        "category": "Finance",
        "tags": "Billing, finance,,  ",
    })

    assert product.name == "invoice"
    assert product.display_name == "Invoice Template"
    assert product.enabled is False
    assert product.description == "Monthly invoice"
    assert product.category == "Finance"
    assert product.tags == frozenset({"billing", "finance"})


@pytest.mark.parametrize("row", [
    {"folderId": "f1"},
    {"name": "", "folderId": "f1"},
    {"name": "invoice"},
    {"name": "invoice", "folderId": "   "},
    {"name": "bad name", "folderId": "f1"},
    {"name": "bad/name", "folderId": "f1"},
])
def test_parse_row_rejects_invalid(row):
    """Test rows missing name/folderId or with bad names are rejected."""
    with pytest.raises(ValidationError):
        parse_row(row)


def test_parse_row_rejects_non_mapping():
    """Test that a non-dict row is rejected."""
    with pytest.raises(ValidationError):
        parse_row(["invoice", "f1"])


def test_validate_name_accepts_identifier_characters():
    """Test names with letters, digits, underscore and dash."""
    assert validate_name("Invoice_v2-final") == "Invoice_v2-final"


@pytest.mark.parametrize("value,expected", [
    ("true", True),
    ("TRUE", True),
    ("yes", True),
    ("1", True),
    ("false", False),
    ("No", False),
    ("0", False),
    ("", True),
    (None, True),
    (True, True),
    (False, False),
])
def test_parse_enabled(value, expected):
    """Test boolean-ish parsing of the enabled column."""
    assert parse_enabled(value) is expected


def test_parse_enabled_rejects_garbage():
    """Test unrecognised enabled values are rejected."""
    with pytest.raises(ValidationError):
        parse_enabled("maybe")


def test_parse_tags_from_list():
    """Test tags given as a list are normalized."""
    assert parse_tags(["A", " b ", ""]) == frozenset({"a", "b"})


def test_to_row_is_parseable():
    """Test that a serialized row parses back to the same definition."""
    product = ProductDefinition(
        name="invoice",
        folder_id="f1",
        display_name="Invoice",
        enabled=False,
        category="Finance",
        tags={"billing"},
    )

    row = to_row(product)
    assert row["enabled"] == "false"
    assert row["tags"] == "billing"
    assert parse_row(row) == product

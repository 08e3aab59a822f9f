"""Parsing between registry rows and ProductDefinition objects."""

import logging
from typing import Any, Iterable

from .models import (
    NAME_PATTERN,
    DEFAULT_CATEGORY,
    ProductDefinition,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Column order of the registry row schema
COLUMNS = ("name", "folderId", "displayName", "enabled", "description", "category", "tags")

TRUE_VALUES = {"true", "yes", "y", "1", "on"}
FALSE_VALUES = {"false", "no", "n", "0", "off"}


def validate_name(name: Any) -> str:
    """
    Check that a product name is present and matches the identifier pattern.

    Raises:
        ValidationError: If the name is missing or malformed
    """
    if name is None or str(name).strip() == "":
        raise ValidationError("Product name is required")

    name = str(name).strip()
    if not NAME_PATTERN.match(name):
        raise ValidationError(
            f"Product name '{name}' may only contain letters, digits, '_' and '-'"
        )
    return name


def validate_folder_id(folder_id: Any) -> str:
    if folder_id is None or str(folder_id).strip() == "":
        raise ValidationError("Folder ID is required")
    return str(folder_id).strip()


def parse_enabled(value: Any, default: bool = True) -> bool:
    """
    Interpret a boolean-ish cell value.

    Empty cells take the default. Text is matched case-insensitively
    against the usual yes/no spellings.

    Raises:
        ValidationError: If the value is not recognisably true or false
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)

    text = str(value).strip().lower()
    if text == "":
        return default
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValidationError(f"Cannot interpret '{value}' as enabled/disabled")


def parse_tags(value: Any) -> frozenset[str]:
    """
    Normalize tags from comma-separated text or a list of tokens.

    Tokens are trimmed and lower-cased; empty tokens are dropped.
    """
    if value is None:
        return frozenset()
    if isinstance(value, str):
        tokens: Iterable[Any] = value.split(",")
    else:
        tokens = value

    return frozenset(
        str(token).strip().lower() for token in tokens if str(token).strip()
    )


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def parse_row(row: dict[str, Any]) -> ProductDefinition:
    """
    Validate a raw registry row into a ProductDefinition.

    Args:
        row: Mapping of column name to cell value

    Returns:
        The typed ProductDefinition

    Raises:
        ValidationError: If name or folderId is missing or invalid
    """
    if not isinstance(row, dict):
        raise ValidationError(f"Expected a row mapping, got {type(row).__name__}")

    name = validate_name(row.get("name"))
    folder_id = validate_folder_id(row.get("folderId"))

    return ProductDefinition(
        name=name,
        folder_id=folder_id,
        display_name=_text(row.get("displayName")) or name,
        enabled=parse_enabled(row.get("enabled")),
        description=_text(row.get("description")),
        category=_text(row.get("category")) or DEFAULT_CATEGORY,
        tags=parse_tags(row.get("tags")),
    )


def to_row(product: ProductDefinition) -> dict[str, str]:
    """Serialize a ProductDefinition into registry row cells."""
    return {
        "name": product.name,
        "folderId": product.folder_id,
        "displayName": product.display_name,
        "enabled": "true" if product.enabled else "false",
        "description": product.description,
        "category": product.category,
        "tags": ",".join(sorted(product.tags)),
    }

"""
Dirty-field tracking for multi-step edits.

The edit wizard accumulates partial edits of a record and sends a single PATCH holding
only the fields that really changed. Values are normalized before comparison so that
untouched optional inputs (empty strings, missing keys) never show up as changes.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional
from homesapp.utils.exceptions import ValidationError

DECIMAL_FIELDS = frozenset({"price", "sale_price", "bathrooms", "area", "referral_percent"})
INTEGER_FIELDS = frozenset({"bedrooms"})


def _parse_decimal(field: str, value: Any) -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(
            f"Invalid number for {field}",
            field_errors=[{"field": field, "message": "must be a number"}]
        )
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(
            f"Invalid number for {field}: {value!r}",
            field_errors=[{"field": field, "message": "must be a number"}]
        )
    if not number.is_finite():
        raise ValidationError(
            f"Invalid number for {field}: {value!r}",
            field_errors=[{"field": field, "message": "must be a finite number"}]
        )
    return number


def _parse_integer(field: str, value: Any) -> Optional[int]:
    number = _parse_decimal(field, value)
    if number is None:
        return None
    if number != number.to_integral_value():
        raise ValidationError(
            f"Invalid integer for {field}: {value!r}",
            field_errors=[{"field": field, "message": "must be a whole number"}]
        )
    return int(number)


def normalize_value(field: str, value: Any) -> Any:
    """
    Normalize a single field value for comparison.

    Raises:
        ValidationError: If a numeric field holds something that is not a number
    """
    if field in DECIMAL_FIELDS:
        return _parse_decimal(field, value)
    if field in INTEGER_FIELDS:
        return _parse_integer(field, value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, str) and value == "":
        return None
    if isinstance(value, tuple):
        return list(value)
    return value


def compute_changes(
    original: Mapping[str, Any],
    edited: Mapping[str, Any],
    fields: Optional[Iterable[str]] = None
) -> Dict[str, Any]:
    """
    Compute the fields whose normalized value differs between two versions of a record.

    Args:
        original: Stored values (missing keys count as None)
        edited: Edited values
        fields: Fields to compare; defaults to every key of ``edited``

    Returns:
        Mapping of changed field to its normalized new value. A None value means the
        field is being cleared. An empty mapping means there is nothing to save.

    Raises:
        ValidationError: If a numeric field cannot be parsed
    """
    names = list(fields) if fields is not None else list(edited.keys())
    changes: Dict[str, Any] = {}

    for field in names:
        old_value = normalize_value(field, original.get(field))
        new_value = normalize_value(field, edited.get(field))
        if old_value != new_value:
            changes[field] = new_value

    return changes


def describe_changes(original: Mapping[str, Any], changes: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Review list of ``{field, old, new}`` entries for a computed change set."""
    return [
        {
            "field": field,
            "old": normalize_value(field, original.get(field)),
            "new": new_value,
        }
        for field, new_value in changes.items()
    ]

"""Cell validation rules.

A rule applies to every cell inside its rectangular range. The first
failing rule (in rule order) decides the error message.
"""
from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence, Union

from models.schemas import Cell, ValidationRule, ValidationType

from .addressing import parse_range, range_contains
from .coercion import to_number, to_text

DEFAULT_ERROR_MESSAGE = "Data validation failed"


def _as_utc(value: datetime) -> datetime:
    # Naive values are read as UTC so they compare with offset-aware ones
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(text))
        except (ValueError, OverflowError):
            return None
    return None


def _bound_as_date(bound: Union[float, str, None]) -> Optional[datetime]:
    """Parse a min/max bound. Numbers are epoch milliseconds.

    A bound that cannot be read is treated as absent.
    """
    if bound is None or bound == "":
        return None
    if isinstance(bound, (int, float)):
        try:
            return datetime.fromtimestamp(bound / 1000, tz=timezone.utc)
        except (OverflowError, ValueError, OSError):
            return None
    return _parse_date(bound)


def validate_number(value: Any, rule: ValidationRule) -> bool:
    number = to_number(value)
    if math.isnan(number):
        return False
    if rule.min_value is not None and number < to_number(rule.min_value):
        return False
    if rule.max_value is not None and number > to_number(rule.max_value):
        return False
    return True


def validate_text(value: Any, rule: ValidationRule) -> bool:
    if not isinstance(value, str):
        return False
    if rule.condition == "notEmpty" and value.strip() == "":
        return False
    if rule.condition == "length" and rule.min_value:
        if len(value) < to_number(rule.min_value):
            return False
    return True


def validate_date(value: Any, rule: ValidationRule) -> bool:
    parsed = _parse_date(value)
    if parsed is None:
        return False

    min_date = _bound_as_date(rule.min_value)
    if min_date is not None and parsed < min_date:
        return False
    max_date = _bound_as_date(rule.max_value)
    if max_date is not None and parsed > max_date:
        return False
    return True


def validate_list(value: Any, rule: ValidationRule) -> bool:
    return to_text(value) in rule.list_values


def validate_by_rule(cell: Cell, rule: ValidationRule) -> bool:
    value = cell.value

    if rule.type == ValidationType.NUMBER:
        return validate_number(value, rule)
    if rule.type == ValidationType.TEXT:
        return validate_text(value, rule)
    if rule.type == ValidationType.DATE:
        return validate_date(value, rule)
    if rule.type == ValidationType.LIST:
        return validate_list(value, rule)
    return True


def validate_cell(rules: Sequence[ValidationRule], cell: Cell, row: int, col: int) -> Optional[str]:
    """Return the error message of the first failing rule covering (row, col)."""
    for rule in rules:
        if not range_contains(parse_range(rule.range), row, col):
            continue
        if not validate_by_rule(cell, rule):
            return rule.error_message or DEFAULT_ERROR_MESSAGE
    return None

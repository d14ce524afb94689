from datetime import datetime
from typing import Any, List, Tuple

from live_store.censor import KEY_FIELD
from live_store.keys import format_timestamp
from live_store.protocols import Predicate

_OPERATORS = {
    "$eq": "=",
    "$ne": "!=",
    "$gt": ">",
    "$gte": ">=",
    "$lt": "<",
    "$lte": "<=",
}


def _to_param(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, (dict, list, tuple)):
        raise TypeError(f"Only scalar values can be compared, got {type(value).__name__}")
    if isinstance(value, bool):
        # json_extract returns JSON booleans as integers.
        return int(value)
    return value


def _parse_sql_target(field: str, params: list) -> str:
    """Helper to determine if a field is the key column or a JSON path into the body."""
    if field == KEY_FIELD:
        return "key"
    if not field or any(not part for part in field.split(".")):
        raise ValueError(f"Filtering on field '{field}' is not supported.")
    params.append("$." + field)
    return "json_extract(body, ?)"


def _handle_comparison(field: str, operator: str, value: Any, params: list) -> str:
    if operator == "$in":
        if not isinstance(value, (list, tuple, set)):
            raise TypeError(f"$in expects a list of values, got {type(value).__name__}")
        if not value:
            return "0"
        target_sql = _parse_sql_target(field, params)
        placeholders = ", ".join("?" for _ in value)
        params.extend(_to_param(v) for v in value)
        return f"{target_sql} IN ({placeholders})"
    if operator not in _OPERATORS:
        raise ValueError(f"Unsupported operator: {operator}")
    target_sql = _parse_sql_target(field, params)
    if value is None and operator in ("$eq", "$ne"):
        return f"{target_sql} IS NULL" if operator == "$eq" else f"{target_sql} IS NOT NULL"
    params.append(_to_param(value))
    return f"{target_sql} {_OPERATORS[operator]} ?"


def parse_predicate_to_sql(predicate: Predicate) -> Tuple[str, List[Any]]:
    """Translates a predicate dict into a SQL condition (without `WHERE`) and its parameters."""
    if not isinstance(predicate, dict):
        raise TypeError(f"Predicate must be a dict, got {type(predicate).__name__}")

    conditions: List[str] = []
    params: List[Any] = []

    for field, condition in predicate.items():
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            for operator, value in condition.items():
                conditions.append(_handle_comparison(field, operator, value, params))
        else:
            conditions.append(_handle_comparison(field, "$eq", condition, params))

    if not conditions:
        return "1", []

    return " AND ".join(conditions), params

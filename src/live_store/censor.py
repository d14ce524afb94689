from typing import Any, Dict

KEY_FIELD = "_id"


def censor(document: Dict[str, Any]) -> Dict[str, Any]:
    """Returns a copy of `document` without the storage-internal key field."""
    return {field: value for field, value in document.items() if field != KEY_FIELD}

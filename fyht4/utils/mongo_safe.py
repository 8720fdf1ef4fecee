# fyht4/utils/mongo_safe.py
from bson import ObjectId


def safe_object_id(value) -> ObjectId | None:
    """ObjectId a partir de un string; None si no es válido."""
    if not value or not isinstance(value, str):
        return None
    if not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def safe_query(query: dict) -> dict:
    # Quita operadores ($where, $ne, ...) para evitar inyección NoSQL
    sanitized = {}
    for key, value in query.items():
        if key.startswith("$"):
            continue
        if isinstance(value, dict):
            sanitized[key] = safe_query(value)
        else:
            sanitized[key] = value
    return sanitized


def safe_update(update: dict, allowed_fields) -> dict:
    allowed = set(allowed_fields)
    sanitized = {}
    for key, value in update.items():
        if key not in allowed:
            continue
        if isinstance(value, dict) and any(str(k).startswith("$") for k in value):
            continue
        sanitized[key] = value
    return sanitized

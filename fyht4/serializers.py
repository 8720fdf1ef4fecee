# fyht4/serializers.py
from datetime import datetime, timezone
from typing import Any, Iterable, Union

from bson import ObjectId

# Valor recursivo tal como sale del driver
Document = Union[None, bool, int, float, str, ObjectId, datetime,
                 list["Document"], dict[str, "Document"]]


def iso_utc(value: datetime) -> str:
    """Mismo formato que Date.toISOString(): UTC, milisegundos y 'Z'."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


def serialize_doc(value: Any) -> Any:
    """Copia JSON-safe de un documento Mongo.

    ObjectId -> str, datetime -> ISO-8601; dicts y listas se recorren en
    profundidad conservando claves y orden. El resto pasa tal cual.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return iso_utc(value)
    if isinstance(value, dict):
        return {key: serialize_doc(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_doc(item) for item in value]
    return value


def serialize_docs(docs: Iterable[Any]) -> list:
    return [serialize_doc(doc) for doc in docs]

"""
Document Store Models

Collection names, roles and identifier helpers shared by both store
implementations. Documents themselves are plain dicts; request bodies are
validated by the pydantic schemas in ``bistro.schemas``.
"""

import enum
from datetime import datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from bistro.core.errors import InvalidIdentifier


class Collection(str, enum.Enum):
    """Collections held by the document store."""
    USERS = "users"
    MENU = "menu"
    CARTS = "carts"
    PAYMENTS = "payments"


class UserRole(str, enum.Enum):
    """Privileged roles. Regular users carry no role field."""
    ADMIN = "admin"


def to_object_id(value: Any) -> ObjectId:
    """
    Convert a caller-supplied identifier to an ObjectId.

    Raises:
        InvalidIdentifier: If the value is not a 24-character hex string
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise InvalidIdentifier(value)


def is_object_id(value: Any) -> bool:
    """Check whether a value can be converted to an ObjectId."""
    return isinstance(value, ObjectId) or (
        isinstance(value, str) and ObjectId.is_valid(value)
    )


def to_number(value: Any) -> float:
    """
    Coerce a stored price to a number.

    Prices may be stored as numbers or numeric strings. Values that cannot
    be converted count as 0, matching the store's ``$convert`` fallback.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def serialize_document(value: Any) -> Any:
    """Recursively make a stored document JSON-friendly."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize_document(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_document(v) for v in value]
    return value

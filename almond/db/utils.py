from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError

T = TypeVar("T")


def apply_dict_updates(entity: T, update_data: dict[str, Any], excluded_attrs: set[str] | None) -> T:
    """Sets each mapped attribute named in `update_data` and returns the same entity."""
    skipped = excluded_attrs or set()
    for key, value in update_data.items():
        if key not in skipped and hasattr(entity, key):
            setattr(entity, key, value)
    return entity


def violated_column(error: IntegrityError) -> str:
    """
    Best-effort name of the column behind a unique-constraint violation,
    read from the driver message (SQLite: "UNIQUE constraint failed: users.email",
    PostgreSQL: 'Key (email)=(...) already exists').
    """
    message = str(error.orig)
    if "UNIQUE constraint failed:" in message:
        return message.split("UNIQUE constraint failed:", 1)[1].split(",")[0].strip().split(".")[-1]
    if "Key (" in message:
        return message.split("Key (", 1)[1].split(")", 1)[0].split(",")[-1].strip()
    return ""

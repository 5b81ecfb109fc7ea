from typing import Any, Dict, Iterable, List, NamedTuple

from pydantic import BaseModel


class FieldChange(NamedTuple):
    """One explicit column assignment: `value` may be None to clear a nullable column."""
    field: str
    value: Any


def changes_from(model: BaseModel, allowed: Iterable[str]) -> List[FieldChange]:
    """
    Build the change set for a partial update.

    Only fields the caller actually supplied (`model_fields_set`) produce a
    change; an explicit null is kept as a change to None.
    """
    allowed = list(allowed)
    return [
        FieldChange(name, getattr(model, name))
        for name in allowed
        if name in model.model_fields_set
    ]


def as_dict(changes: Iterable[FieldChange]) -> Dict[str, Any]:
    return {change.field: change.value for change in changes}


def disallowed_fields(changes: Iterable[FieldChange], allowed: Iterable[str]) -> List[str]:
    allowed = set(allowed)
    return sorted({change.field for change in changes if change.field not in allowed})

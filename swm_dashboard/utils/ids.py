import uuid


def new_id() -> str:
    """Opaque record identifier (32 lowercase hex chars)."""
    return uuid.uuid4().hex


def is_valid_id(value) -> bool:
    """True when `value` is a well-formed record identifier."""
    if not isinstance(value, str) or len(value) != 32:
        return False
    try:
        return uuid.UUID(hex=value).hex == value
    except ValueError:
        return False

"""Validation helpers."""
import uuid
from typing import Optional, Type


def ensure(condition: bool, message: str, exc: Type[Exception] = ValueError) -> None:
    if not condition:
        raise exc(message)


def parse_uuid(token: str) -> Optional[uuid.UUID]:
    """Return ``token`` as a :class:`uuid.UUID` or ``None`` if it is not one."""

    try:
        return uuid.UUID(token)
    except (TypeError, ValueError, AttributeError):
        return None

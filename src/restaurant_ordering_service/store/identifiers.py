"""Document identifier helpers.

Documents are identified by UUID4 strings generated by the service when a document is
first written. Client-supplied identifiers are parsed back into canonical form before
they reach the store.
"""

import uuid

from restaurant_ordering_service.exceptions import InvalidId


def new_id() -> str:
    """Generate a new document identifier."""
    return str(uuid.uuid4())


def to_native_id(value: str) -> str:
    """Translate an opaque identifier string into the store's canonical form.

    Args:
        value: Identifier as received from a client

    Returns:
        Canonical lowercase, hyphenated UUID string

    Raises:
        InvalidId: If the value is not a UUID
    """
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError, AttributeError) as e:
        raise InvalidId(str(value)) from e


def to_native_ids(values: list[str]) -> list[str]:
    """Translate a list of identifiers, preserving order and dropping duplicates.

    Raises:
        InvalidId: If any value is malformed
    """
    native: list[str] = []
    for value in values:
        parsed = to_native_id(value)
        if parsed not in native:
            native.append(parsed)
    return native

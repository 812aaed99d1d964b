"""Field-level change detection for partial updates."""

from typing import Any


def stored_value(existing: Any, key: str) -> Any:
    """Read ``key`` from a destination record (``metadata`` lives on ``metadata_``)."""
    if key == "metadata":
        return getattr(existing, "metadata_", None) or {}
    return getattr(existing, key, None)


def diff_fields(normalized: dict[str, Any], existing: Any) -> dict[str, Any]:
    """Return only the normalized fields whose value differs from ``existing``.

    Metadata is compared key by key and written back merged, so keys that
    only exist on the destination are kept.
    """
    changes: dict[str, Any] = {}
    for key, value in normalized.items():
        stored = stored_value(existing, key)
        if key == "metadata":
            if any(stored.get(k) != v for k, v in value.items()):
                changes[key] = {**stored, **value}
        elif value != stored:
            changes[key] = value
    return changes

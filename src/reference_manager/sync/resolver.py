"""Last-Write-Wins conflict resolution for the reconciliation engine.

When both sides changed a field to different values, the value from the
record with the strictly newer revision timestamp wins.  Timestamps are
compared lexicographically, which orders ISO-8601 instants correctly as
long as they are UTC and zero-padded (the format the library writes).

Equal timestamps are ambiguous.  They fall through to the caller's
``PreferOption``; without one the local value is kept *provisionally*
and the item is classified ``UNRESOLVED`` so the caller can refuse to
persist it.
"""

from __future__ import annotations

from typing import Any

from reference_manager.sync.models import PreferOption, Resolution

_PREFER_MAP: dict[str, PreferOption] = {
    option.value: option for option in PreferOption
}


def resolve_field_conflict(
    local_value: Any,
    remote_value: Any,
    local_timestamp: str,
    remote_timestamp: str,
    prefer: PreferOption | None = None,
) -> tuple[Any, bool]:
    """Pick the winning value for a field changed on both sides.

    Args:
        local_value: The field value in the local record.
        remote_value: The field value in the remote record.
        local_timestamp: Revision timestamp of the local record.
        remote_timestamp: Revision timestamp of the remote record.
        prefer: Tie-break for equal timestamps.

    Returns:
        A tuple of ``(value, provisional)`` where *provisional* is ``True``
        when the value was chosen only by the default tie-break.
    """
    if local_timestamp > remote_timestamp:
        return local_value, False
    if remote_timestamp > local_timestamp:
        return remote_value, False
    if prefer is PreferOption.REMOTE:
        return remote_value, False
    if prefer is PreferOption.LOCAL:
        return local_value, False
    return local_value, True


def classify_resolution(
    local_timestamp: str,
    remote_timestamp: str,
    prefer: PreferOption | None = None,
) -> Resolution:
    """Classify how an item's field conflicts were decided."""
    if local_timestamp != remote_timestamp:
        return Resolution.AUTO_LWW
    if prefer is PreferOption.LOCAL:
        return Resolution.PREFER_LOCAL
    if prefer is PreferOption.REMOTE:
        return Resolution.PREFER_REMOTE
    return Resolution.UNRESOLVED


def parse_prefer_option(value: str | None) -> PreferOption | None:
    """Convert a config/CLI string into a ``PreferOption``.

    Args:
        value: ``"local"``, ``"remote"``, or ``None``/empty for no
            preference.  Case and surrounding whitespace are ignored.

    Returns:
        The matching option, or ``None``.

    Raises:
        ValueError: If the string is not recognised.
    """
    if value is None or not value.strip():
        return None
    option = _PREFER_MAP.get(value.strip().lower())
    if option is None:
        raise ValueError(
            f"Unknown prefer option: '{value}'. Valid options: {sorted(_PREFER_MAP.keys())}"
        )
    return option

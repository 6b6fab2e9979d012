"""Identity, timestamp, and indexing helpers for reference snapshots.

A snapshot is an ordered list of CSL-JSON items.  Before merging, each
snapshot is indexed by identity key:

* ``custom.uuid`` is the stable key assigned when a reference is created.
* ``id`` (the citation key) is used when the UUID is missing.  This is a
  *degraded* match: two unrelated references sharing a citation key are
  conflated.
* Records with neither collapse onto the ``"unknown"`` key.

None of these cases raise; a bad record in one corner of a large library
must not abort reconciliation of the rest.
"""

from __future__ import annotations

import logging
from typing import Any

from reference_manager.sync.models import (
    IdentityKey,
    IdentityKind,
    Record,
    Snapshot,
)

logger = logging.getLogger(__name__)

METADATA_FIELD = "custom"
EPOCH = "1970-01-01T00:00:00.000Z"
UNKNOWN_ID = "unknown"


def _metadata(record: Record) -> dict[str, Any]:
    custom = record.get(METADATA_FIELD)
    return custom if isinstance(custom, dict) else {}


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _id_text(value: Any) -> str | None:
    # CSL-JSON allows numeric ids; bool is an int subclass but never an id
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return _non_empty_str(value)


def get_identity(record: Record) -> IdentityKey:
    """Return the identity key used to match *record* across snapshots.

    A numeric ``id`` matches as its decimal text, so ``1`` and ``"1"`` are
    the same citation key.
    """
    uuid = _non_empty_str(_metadata(record).get("uuid"))
    if uuid is not None:
        return IdentityKey(kind=IdentityKind.STABLE, value=uuid)
    citation_key = _id_text(record.get("id"))
    if citation_key is not None:
        return IdentityKey(kind=IdentityKind.FALLBACK, value=citation_key)
    return IdentityKey(kind=IdentityKind.MISSING, value=UNKNOWN_ID)


def get_citation_key(record: Record) -> str:
    return _id_text(record.get("id")) or UNKNOWN_ID


def get_timestamp(record: Record) -> str:
    """Return the revision timestamp of *record*.

    Falls back to ``custom.created_at`` and then to ``EPOCH`` (the oldest
    possible instant).
    """
    custom = _metadata(record)
    return (
        _non_empty_str(custom.get("timestamp"))
        or _non_empty_str(custom.get("created_at"))
        or EPOCH
    )


def index_snapshot(
    snapshot: Snapshot, label: str = "snapshot"
) -> dict[IdentityKey, Record]:
    """Index *snapshot* by identity key, preserving input order.

    When two records share a key the later one wins and a warning is
    logged.

    Args:
        snapshot: The records to index.
        label: Name used in log messages (``"base"``, ``"local"``, ...).

    Returns:
        Insertion-ordered mapping of identity key to record.
    """
    index: dict[IdentityKey, Record] = {}
    for record in snapshot:
        key = get_identity(record)
        if key in index:
            logger.warning(
                "Duplicate %s identity %r in %s; keeping the later record",
                key.kind.value,
                key.value,
                label,
            )
        elif key.kind == IdentityKind.MISSING:
            logger.warning(
                "Record without uuid or id in %s; matching as %r",
                label,
                UNKNOWN_ID,
            )
        index[key] = record
    return index


def union_keys(
    *indexes: dict[IdentityKey, Record],
) -> list[IdentityKey]:
    """Ordered union of the keys of *indexes* (first index's order first)."""
    seen: dict[IdentityKey, None] = {}
    for index in indexes:
        for key in index:
            seen.setdefault(key, None)
    return list(seen)


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality for JSON values.

    ``True == 1`` in Python, but not in JSON, so booleans are compared by
    type as well as value.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))
    return a == b

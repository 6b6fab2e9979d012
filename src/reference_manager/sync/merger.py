"""Field-level three-way merge of a single reference.

Each top-level field of a record is merged independently against the
base version:

* Neither side changed it: keep the base value.
* Exactly one side changed it: take that side's value.
* Both changed it to the same value: take the common value.
* Both changed it to different values: Last-Write-Wins (see
  ``resolver``) and record a ``FieldConflict``.

The ``custom`` field holds revision bookkeeping (uuid, timestamps).  It
is resolved the same way but never reported as a conflict, because it
differs whenever both sides were edited at different times.

A field missing from one version is represented by ``MISSING`` so that
"deleted" and "set to null" stay distinct.  A merged value of
``MISSING`` removes the key from the merged record.
"""

from __future__ import annotations

import copy
from typing import Any

from reference_manager.sync.models import (
    FieldConflict,
    IdentityKey,
    IdentityKind,
    ItemConflict,
    MergeOptions,
    PreferOption,
    Record,
)
from reference_manager.sync.resolver import (
    classify_resolution,
    resolve_field_conflict,
)
from reference_manager.sync.snapshot import (
    EPOCH,
    METADATA_FIELD,
    deep_equal,
    get_citation_key,
    get_identity,
    get_timestamp,
)


class _Missing:
    """Sentinel for a field absent from a record."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def _public(value: Any) -> Any:
    """Map ``MISSING`` to ``None`` for values exposed in conflicts."""
    return None if value is MISSING else value


def merge_field(
    name: str,
    base_value: Any,
    local_value: Any,
    remote_value: Any,
    local_timestamp: str,
    remote_timestamp: str,
    prefer: PreferOption | None = None,
) -> tuple[Any, FieldConflict | None]:
    """Merge one field from base, local, and remote versions.

    Args:
        name: Field name.
        base_value: Value in base (``MISSING`` if absent).
        local_value: Value in local (``MISSING`` if absent).
        remote_value: Value in remote (``MISSING`` if absent).
        local_timestamp: Revision timestamp of the local record.
        remote_timestamp: Revision timestamp of the remote record.
        prefer: Tie-break for equal timestamps.

    Returns:
        A tuple of ``(value, conflict)``.  *conflict* is ``None`` unless
        both sides changed the field to different values and the field
        is not the revision-metadata field.
    """
    local_changed = not deep_equal(base_value, local_value)
    remote_changed = not deep_equal(base_value, remote_value)

    if not local_changed and not remote_changed:
        return base_value, None
    if local_changed and not remote_changed:
        return local_value, None
    if remote_changed and not local_changed:
        return remote_value, None
    if deep_equal(local_value, remote_value):
        return local_value, None

    resolved, provisional = resolve_field_conflict(
        local_value,
        remote_value,
        local_timestamp,
        remote_timestamp,
        prefer,
    )

    if name == METADATA_FIELD:
        return resolved, None

    sides = {
        "base": base_value,
        "local": local_value,
        "remote": remote_value,
        "resolved": resolved,
    }
    return resolved, FieldConflict(
        field=name,
        **{side: _public(value) for side, value in sides.items()},
        provisional=provisional,
        absent=[side for side, value in sides.items() if value is MISSING],
    )


def _field_union(*records: Record) -> list[str]:
    names: dict[str, None] = {}
    for record in records:
        for name in record:
            names.setdefault(name, None)
    return list(names)


def merge_record(
    base: Record,
    local: Record,
    remote: Record,
    options: MergeOptions | None = None,
    identity: IdentityKey | None = None,
) -> tuple[Record, ItemConflict | None]:
    """Merge a single record from base, local, and remote versions.

    The merged record keeps base's field order, followed by fields first
    seen in local and then remote.  Values are deep-copied so the result
    never aliases the inputs.

    Args:
        base: The common ancestor (possibly a synthetic base).
        local: The local version.
        remote: The remote version.
        options: Merge options (tie-break preference).
        identity: Key the record was matched by; derived from *base*
            when omitted.

    Returns:
        A tuple of ``(merged_record, item_conflict)``; *item_conflict* is
        ``None`` when no user-facing field was disputed.
    """
    prefer = options.prefer if options else None
    local_timestamp = get_timestamp(local)
    remote_timestamp = get_timestamp(remote)

    merged: Record = {}
    field_conflicts: list[FieldConflict] = []

    for name in _field_union(base, local, remote):
        value, conflict = merge_field(
            name,
            base.get(name, MISSING),
            local.get(name, MISSING),
            remote.get(name, MISSING),
            local_timestamp,
            remote_timestamp,
            prefer,
        )
        if value is not MISSING:
            merged[name] = copy.deepcopy(value)
        if conflict is not None:
            field_conflicts.append(conflict)

    if not field_conflicts:
        return merged, None

    return merged, ItemConflict(
        identity=identity or get_identity(base),
        citation_key=get_citation_key(merged),
        fields=field_conflicts,
        local_timestamp=local_timestamp,
        remote_timestamp=remote_timestamp,
        resolution=classify_resolution(
            local_timestamp, remote_timestamp, prefer
        ),
    )


def synthetic_base(identity: IdentityKey) -> Record:
    """Build the empty ancestor used to merge a dual addition.

    The record carries only the identity and ``EPOCH`` timestamps, so
    every populated field counts as added on both sides.
    """
    custom: dict[str, Any] = {"created_at": EPOCH, "timestamp": EPOCH}
    if identity.kind == IdentityKind.STABLE:
        return {METADATA_FIELD: {"uuid": identity.value, **custom}}
    return {"id": identity.value, METADATA_FIELD: custom}

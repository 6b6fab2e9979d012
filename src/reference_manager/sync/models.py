"""Pydantic models for the three-way reconciliation engine.

Defines the core data contracts used across all sync modules:

- ``IdentityKind`` / ``IdentityKey``: How a record was matched across
  snapshots (stable UUID, fallback citation key, or nothing at all).
- ``PreferOption``: Tie-break preference for equal timestamps.
- ``Resolution``: How an item conflict was (or was not) decided.
- ``MergeStatus``: Overall outcome of a merge.
- ``FieldConflict``: One disputed field on one record.
- ``ItemConflict``: All disputed fields for one record identity.
- ``MergeResult``: Merged collection plus partitions and conflicts.

All models are frozen (immutable) for safety.  Records themselves are
plain ``dict`` objects (CSL-JSON items) because they have no fixed schema.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel

Record = dict[str, Any]
Snapshot = Sequence[Record]


class IdentityKind(str, Enum):
    """Which attribute supplied a record's identity key."""

    STABLE = "stable"
    FALLBACK = "fallback"
    MISSING = "missing"


class IdentityKey(BaseModel):
    """Identity used to match the same record across snapshots.

    Two keys are equal only when both ``kind`` and ``value`` match, so a
    citation-key fallback never collides with a UUID that happens to have
    the same text.

    Attributes:
        kind: Source of the key.
        value: The key text (``"unknown"`` for ``MISSING``).
    """

    kind: IdentityKind
    value: str

    model_config = {"frozen": True}

    @property
    def is_degraded(self) -> bool:
        """True when matching did not use the stable UUID."""
        return self.kind != IdentityKind.STABLE

    def __str__(self) -> str:
        return self.value


class PreferOption(str, Enum):
    """Side that wins when both revision timestamps are equal."""

    LOCAL = "local"
    REMOTE = "remote"


class Resolution(str, Enum):
    """How the conflicting fields of one item were decided."""

    AUTO_LWW = "auto-lww"
    PREFER_LOCAL = "prefer-local"
    PREFER_REMOTE = "prefer-remote"
    UNRESOLVED = "unresolved"

    @property
    def blocks_persist(self) -> bool:
        """Whether the merged record must not be treated as authoritative."""
        return self is Resolution.UNRESOLVED


class MergeStatus(str, Enum):
    """Summary of a merge that callers can branch on."""

    SUCCESS = "success"
    AUTO_RESOLVED = "auto-resolved"
    CONFLICT = "conflict"


class MergeOptions(BaseModel):
    """Options for ``three_way_merge``.

    Attributes:
        prefer: Tie-break used when local and remote timestamps are equal.
            If unset, such conflicts are reported as unresolved.
    """

    prefer: PreferOption | None = None

    model_config = {"frozen": True}


class FieldConflict(BaseModel):
    """A single field changed differently on both sides.

    A side where the field is absent has value ``None`` and is named in
    ``absent``, which keeps it apart from an explicit ``null``.

    Attributes:
        field: Top-level field name (e.g. ``"title"``).
        base: Value in the base version.
        local: Value in the local version.
        remote: Value in the remote version.
        resolved: Value written to the merged record.
        provisional: True when ``resolved`` is only the default tie-break
            (equal timestamps, no preference).
        absent: Sides without the field, from ``"base"``, ``"local"``,
            ``"remote"`` and ``"resolved"``.
    """

    field: str
    base: Any = None
    local: Any = None
    remote: Any = None
    resolved: Any = None
    provisional: bool = False
    absent: list[str] = []

    model_config = {"frozen": True}


class ItemConflict(BaseModel):
    """All conflicting fields for one record identity.

    Attributes:
        identity: Key the record was matched by.
        citation_key: The record's ``id`` (``"unknown"`` if absent).
        fields: The disputed fields, in field-union order.
        local_timestamp: Revision timestamp of the local record.
        remote_timestamp: Revision timestamp of the remote record.
        resolution: How the conflict was decided.
    """

    identity: IdentityKey
    citation_key: str
    fields: list[FieldConflict]
    local_timestamp: str
    remote_timestamp: str
    resolution: Resolution

    model_config = {"frozen": True}

    @property
    def field_names(self) -> list[str]:
        return [fc.field for fc in self.fields]


class MergeResult(BaseModel):
    """Outcome of a three-way merge.

    Attributes:
        status: Overall merge status.
        merged: Records of the reconciled collection, in processing order.
        conflicts: One entry per record with disputed fields.
        local_only: Records added only in local.
        remote_only: Records added only in remote.
        deleted_in_local: Base records absent from local.
        deleted_in_remote: Base records absent from remote.
    """

    status: MergeStatus
    merged: list[Record] = []
    conflicts: list[ItemConflict] = []
    local_only: list[Record] = []
    remote_only: list[Record] = []
    deleted_in_local: list[Record] = []
    deleted_in_remote: list[Record] = []

    model_config = {"frozen": True}

    @property
    def unresolved(self) -> list[ItemConflict]:
        """Conflicts that still need a human decision."""
        return [
            c for c in self.conflicts if c.resolution.blocks_persist
        ]

    @property
    def has_unresolved(self) -> bool:
        return bool(self.unresolved)

    @property
    def can_persist(self) -> bool:
        """Whether ``merged`` may be saved and the base advanced."""
        return self.status != MergeStatus.CONFLICT

    def summary(self) -> str:
        """Format a human-readable summary of the merge.

        Returns:
            Multi-line summary string with counts by partition.
        """
        lines = [
            f"Merge status: {self.status.value}",
            f"  Merged:            {len(self.merged)}",
            f"  Added (local):     {len(self.local_only)}",
            f"  Added (remote):    {len(self.remote_only)}",
            f"  Deleted (local):   {len(self.deleted_in_local)}",
            f"  Deleted (remote):  {len(self.deleted_in_remote)}",
            f"  Conflicts:         {len(self.conflicts)}",
            f"  Unresolved:        {len(self.unresolved)}",
        ]
        return "\n".join(lines)

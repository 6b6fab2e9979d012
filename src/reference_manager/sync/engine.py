"""Three-way reconciliation of reference libraries.

``three_way_merge`` takes three snapshots of a library -- the common
ancestor (``base``), the working copy (``local``) and the incoming copy
(``remote``) -- and produces a merged library plus an account of what
happened to every record:

============  =====  ======  ===========================================
base          local  remote  outcome
============  =====  ======  ===========================================
yes           yes    yes     field-level merge (``merger.merge_record``)
no            yes    yes     dual addition
no            yes    no      kept, listed in ``local_only``
no            no     yes     kept, listed in ``remote_only``
yes           no     yes     dropped, listed in ``deleted_in_local``
yes           yes    no      dropped, listed in ``deleted_in_remote``
yes           no     no      dropped, listed in both deletion lists
============  =====  ======  ===========================================

Deletion always wins: a record removed on one side is dropped even if
the other side edited it.  Whether such an edit should undelete the
record is an open product question; dropping it is the current contract.

The function is pure.  It never mutates its inputs, keeps no state
between calls, and never raises for malformed records.  Records in the
result are copies and share no nested values with the inputs.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field

from reference_manager.sync.merger import merge_record, synthetic_base
from reference_manager.sync.models import (
    IdentityKey,
    ItemConflict,
    MergeOptions,
    MergeResult,
    MergeStatus,
    Record,
    Snapshot,
)
from reference_manager.sync.snapshot import (
    deep_equal,
    index_snapshot,
    union_keys,
)

logger = logging.getLogger(__name__)


@dataclass
class _Accumulator:
    """Mutable lists filled while walking the identity union."""

    merged: list[Record] = field(default_factory=list)
    conflicts: list[ItemConflict] = field(default_factory=list)
    local_only: list[Record] = field(default_factory=list)
    remote_only: list[Record] = field(default_factory=list)
    deleted_in_local: list[Record] = field(default_factory=list)
    deleted_in_remote: list[Record] = field(default_factory=list)

    def add_merged(
        self, record: Record, conflict: ItemConflict | None
    ) -> None:
        self.merged.append(record)
        if conflict is not None:
            self.conflicts.append(conflict)

    def status(self) -> MergeStatus:
        if not self.conflicts:
            return MergeStatus.SUCCESS
        if any(c.resolution.blocks_persist for c in self.conflicts):
            return MergeStatus.CONFLICT
        return MergeStatus.AUTO_RESOLVED


def _merge_dual_addition(
    key: IdentityKey,
    local_item: Record,
    remote_item: Record,
    options: MergeOptions,
    acc: _Accumulator,
) -> None:
    """Handle a record added independently on both sides."""
    if deep_equal(local_item, remote_item):
        logger.debug("Identical dual addition %s", key)
        acc.add_merged(copy.deepcopy(local_item), None)
        return

    logger.debug("Divergent dual addition %s; merging against empty base", key)
    merged, conflict = merge_record(
        synthetic_base(key), local_item, remote_item, options, identity=key
    )
    acc.add_merged(merged, conflict)


def _process_identity(
    key: IdentityKey,
    base_item: Record | None,
    local_item: Record | None,
    remote_item: Record | None,
    options: MergeOptions,
    acc: _Accumulator,
) -> None:
    """Classify one identity across the three snapshots and record it."""
    if base_item is not None:
        if local_item is not None and remote_item is not None:
            merged, conflict = merge_record(
                base_item, local_item, remote_item, options, identity=key
            )
            acc.add_merged(merged, conflict)
            return
        if local_item is None:
            logger.debug("%s deleted in local", key)
            acc.deleted_in_local.append(copy.deepcopy(base_item))
        if remote_item is None:
            logger.debug("%s deleted in remote", key)
            acc.deleted_in_remote.append(copy.deepcopy(base_item))
        return

    if local_item is not None and remote_item is not None:
        _merge_dual_addition(key, local_item, remote_item, options, acc)
    elif local_item is not None:
        logger.debug("%s added in local", key)
        added = copy.deepcopy(local_item)
        acc.merged.append(added)
        acc.local_only.append(added)
    elif remote_item is not None:
        logger.debug("%s added in remote", key)
        added = copy.deepcopy(remote_item)
        acc.merged.append(added)
        acc.remote_only.append(added)


def three_way_merge(
    base: Snapshot,
    local: Snapshot,
    remote: Snapshot,
    options: MergeOptions | None = None,
) -> MergeResult:
    """Perform a three-way merge of reference snapshots.

    Args:
        base: Base version (common ancestor).
        local: Local version (current working copy).
        remote: Remote version (incoming changes).
        options: Merge options, e.g. the tie-break preference.

    Returns:
        A ``MergeResult`` with the merged records, the partitions, the
        item conflicts and the overall status.
    """
    options = options or MergeOptions()

    base_map = index_snapshot(base, "base")
    local_map = index_snapshot(local, "local")
    remote_map = index_snapshot(remote, "remote")

    acc = _Accumulator()
    for key in union_keys(base_map, local_map, remote_map):
        _process_identity(
            key,
            base_map.get(key),
            local_map.get(key),
            remote_map.get(key),
            options,
            acc,
        )

    status = acc.status()
    for conflict in acc.conflicts:
        if conflict.resolution.blocks_persist:
            logger.info(
                "Unresolved conflict on %s (%s): fields %s",
                conflict.identity,
                conflict.citation_key,
                ", ".join(conflict.field_names),
            )

    logger.debug(
        "Merged %d records: %d conflicts, status %s",
        len(acc.merged),
        len(acc.conflicts),
        status.value,
    )

    return MergeResult(
        status=status,
        merged=acc.merged,
        conflicts=acc.conflicts,
        local_only=acc.local_only,
        remote_only=acc.remote_only,
        deleted_in_local=acc.deleted_in_local,
        deleted_in_remote=acc.deleted_in_remote,
    )

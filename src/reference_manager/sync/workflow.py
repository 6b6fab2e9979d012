"""Reconciliation workflow around the three-way merge.

``SyncWorkflow`` ties the base store and the merge engine together:

1. Loads the stored base for the library (unless one is supplied).
2. Runs ``three_way_merge`` on base, local and remote.
3. On ``success`` / ``auto-resolved`` advances the stored base to the
   merged library, so the next sync diverges from this point.
4. On ``conflict`` leaves the stored base untouched until the conflicts
   are resolved out-of-band (a re-run with ``prefer``, or hand edits).

Obtaining the local and remote snapshots and writing the merged library
back are the caller's job.
"""

from __future__ import annotations

import logging

from reference_manager.sync.engine import three_way_merge
from reference_manager.sync.models import (
    MergeOptions,
    MergeResult,
    MergeStatus,
    Snapshot,
)
from reference_manager.sync.state import BaseStore

logger = logging.getLogger(__name__)


class SyncWorkflow:
    """Run one reconciliation of a library against its stored base.

    Args:
        store: Where the common ancestor is persisted.
        library_name: Name of the library (selects the base file).
        options: Merge options passed to the engine.
    """

    def __init__(
        self,
        store: BaseStore,
        library_name: str,
        options: MergeOptions | None = None,
    ) -> None:
        self.store = store
        self.library_name = library_name
        self.options = options or MergeOptions()

    def run(
        self,
        local: Snapshot,
        remote: Snapshot,
        base: Snapshot | None = None,
        dry_run: bool = False,
    ) -> MergeResult:
        """Merge *local* and *remote* and advance the base if allowed.

        Args:
            local: The local working copy.
            remote: The remote copy.
            base: Explicit common ancestor; the stored base is used when
                ``None``.
            dry_run: If ``True``, never touch the stored base.

        Returns:
            The ``MergeResult`` from the engine.
        """
        if base is None:
            base = self.store.load(self.library_name)
            if not base:
                logger.info(
                    "No stored base for '%s'; treating all records as additions",
                    self.library_name,
                )

        result = three_way_merge(base, local, remote, self.options)

        if dry_run:
            logger.info(
                "Dry run for '%s': status %s, base not advanced",
                self.library_name,
                result.status.value,
            )
            return result

        if result.status == MergeStatus.CONFLICT:
            logger.warning(
                "'%s' has %d unresolved conflicts; base not advanced",
                self.library_name,
                len(result.unresolved),
            )
            return result

        self.store.save(self.library_name, result.merged)
        logger.info(
            "Advanced base for '%s' to %d records (%s)",
            self.library_name,
            len(result.merged),
            result.status.value,
        )
        return result

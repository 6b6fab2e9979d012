"""Three-way reconciliation of reference libraries.

Public API for merging two divergent copies of a reference library
(``local`` and ``remote``) against their common ancestor (``base``).

Architecture
------------
Records are matched by identity key (``custom.uuid``, falling back to the
citation key ``id``) and merged field by field.  When both sides changed
a field differently, **Last-Write-Wins** on the record's
``custom.timestamp`` decides; equal timestamps are decided by an explicit
``prefer`` option or reported as unresolved.

Modules:

- ``engine``    -- ``three_way_merge``: item-level orchestration.
- ``merger``    -- Field-level merge of one record.
- ``resolver``  -- LWW tie-break and resolution classification.
- ``snapshot``  -- Identity keys, timestamps, snapshot indexing.
- ``models``    -- ``MergeResult``, ``ItemConflict``, ``FieldConflict``
  and the enums they use.
- ``state``     -- ``BaseStore``: persisted common ancestor.
- ``workflow``  -- ``SyncWorkflow``: merge and advance the stored base.
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from pathlib import Path
    from reference_manager.sync import (
        BaseStore, MergeOptions, PreferOption, SyncWorkflow,
        format_merge_report,
    )

    workflow = SyncWorkflow(
        store=BaseStore(Path(".reference_manager")),
        library_name="default",
        options=MergeOptions(prefer=PreferOption.REMOTE),
    )
    result = workflow.run(local_items, remote_items)
    print(format_merge_report(result))
"""

from .engine import three_way_merge
from .models import (
    FieldConflict,
    IdentityKey,
    IdentityKind,
    ItemConflict,
    MergeOptions,
    MergeResult,
    MergeStatus,
    PreferOption,
    Resolution,
)
from .reporter import (
    format_base_status,
    format_conflict_diff,
    format_merge_report,
    result_to_json,
)
from .resolver import parse_prefer_option
from .state import BaseStore
from .workflow import SyncWorkflow

__all__ = [
    "BaseStore",
    "FieldConflict",
    "IdentityKey",
    "IdentityKind",
    "ItemConflict",
    "MergeOptions",
    "MergeResult",
    "MergeStatus",
    "PreferOption",
    "Resolution",
    "SyncWorkflow",
    "format_base_status",
    "format_conflict_diff",
    "format_merge_report",
    "parse_prefer_option",
    "result_to_json",
    "three_way_merge",
]

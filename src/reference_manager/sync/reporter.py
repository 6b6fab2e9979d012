"""Merge report formatting functions.

Provides human-readable and machine-readable output for merge results:

- ``format_merge_report`` -- full post-merge summary.
- ``format_conflict_diff`` -- side-by-side field values for review.
- ``result_to_json`` -- structured dict for JSON output.
- ``format_base_status`` -- what is stored as the common ancestor.
"""

from __future__ import annotations

import difflib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ItemConflict, MergeResult, Record

from .models import MergeStatus
from .snapshot import get_citation_key, get_identity

_STATUS_LABELS: dict[MergeStatus, str] = {
    MergeStatus.SUCCESS: "merged cleanly",
    MergeStatus.AUTO_RESOLVED: "conflicts auto-resolved",
    MergeStatus.CONFLICT: "UNRESOLVED CONFLICTS",
}


def _render(value: Any, absent: bool = False) -> str:
    if absent:
        return "(absent)"
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def _label(record: Record) -> str:
    identity = get_identity(record)
    citation_key = get_citation_key(record)
    if citation_key == identity.value:
        return citation_key
    return f"{citation_key} [{identity.value}]"


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_merge_report(
    result: MergeResult, library_name: str | None = None
) -> str:
    """Format a complete merge report as human-readable text.

    Sections are only included when they contain at least one record.

    Args:
        result: The merge result.
        library_name: Optional library name for the header.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = "Merge report"
    if library_name:
        header += f" for '{library_name}'"
    lines.append(f"{header}: {_STATUS_LABELS[result.status]}")
    lines.append("")

    lines.append(
        f"{len(result.merged)} references: "
        f"{len(result.local_only)} added locally, "
        f"{len(result.remote_only)} added remotely, "
        f"{len(result.deleted_in_local)} deleted locally, "
        f"{len(result.deleted_in_remote)} deleted remotely, "
        f"{len(result.conflicts)} conflicts"
    )
    lines.append("")

    sections = [
        ("Added (local):", result.local_only),
        ("Added (remote):", result.remote_only),
        ("Deleted (local):", result.deleted_in_local),
        ("Deleted (remote):", result.deleted_in_remote),
    ]
    for title, records in sections:
        if not records:
            continue
        lines.append(title)
        for record in records:
            lines.append(f"  {_label(record)}")
        lines.append("")

    if result.conflicts:
        lines.append("Conflicts:")
        for conflict in result.conflicts:
            lines.append(
                f"  {conflict.citation_key}: "
                f"{', '.join(conflict.field_names)} "
                f"({conflict.resolution.value})"
            )
        lines.append("")

    if result.status == MergeStatus.CONFLICT:
        lines.append(
            "Re-run with --prefer local or --prefer remote, "
            "or edit the conflicting references by hand."
        )

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Conflict diff
# ------------------------------------------------------------------


def format_conflict_diff(conflict: ItemConflict) -> str:
    """Format a single item conflict for review.

    Shows base, local, remote and resolved values of each field, and a
    unified diff of local against remote for multi-line values.

    Args:
        conflict: The item conflict.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append(
        f"Conflict: {conflict.citation_key} "
        f"[{conflict.identity.kind.value}: {conflict.identity.value}]"
    )
    lines.append(f"  local timestamp:  {conflict.local_timestamp}")
    lines.append(f"  remote timestamp: {conflict.remote_timestamp}")
    lines.append(f"  resolution:       {conflict.resolution.value}")
    lines.append("")

    for fc in conflict.fields:
        lines.append(f"[{fc.field}]")
        for side in ("base", "local", "remote"):
            value = _render(getattr(fc, side), side in fc.absent)
            lines.append(f"  {side + ':':<9} {value}")
        resolved = _render(fc.resolved, "resolved" in fc.absent)
        if fc.provisional:
            resolved += "  (provisional)"
        lines.append(f"  resolved: {resolved}")

        local_text = json.dumps(fc.local, ensure_ascii=False, indent=2)
        remote_text = json.dumps(fc.remote, ensure_ascii=False, indent=2)
        if "\n" in local_text or "\n" in remote_text:
            diff = difflib.unified_diff(
                local_text.splitlines(keepends=True),
                remote_text.splitlines(keepends=True),
                fromfile=f"local: {fc.field}",
                tofile=f"remote: {fc.field}",
            )
            diff_text = "".join(diff).rstrip()
            if diff_text:
                lines.append(diff_text)
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def result_to_json(result: MergeResult) -> dict:
    """Convert a merge result to a structured dict for JSON serialisation.

    Args:
        result: The merge result.

    Returns:
        Dict with status, counts, conflicts and partition keys.  Records
        are identified by citation key rather than repeated in full,
        except ``merged`` which is included as-is.
    """
    return {
        "status": result.status.value,
        "counts": {
            "merged": len(result.merged),
            "local_only": len(result.local_only),
            "remote_only": len(result.remote_only),
            "deleted_in_local": len(result.deleted_in_local),
            "deleted_in_remote": len(result.deleted_in_remote),
            "conflicts": len(result.conflicts),
            "unresolved": len(result.unresolved),
        },
        "conflicts": [
            c.model_dump(mode="json") for c in result.conflicts
        ],
        "local_only": [get_citation_key(r) for r in result.local_only],
        "remote_only": [get_citation_key(r) for r in result.remote_only],
        "deleted_in_local": [
            get_citation_key(r) for r in result.deleted_in_local
        ],
        "deleted_in_remote": [
            get_citation_key(r) for r in result.deleted_in_remote
        ],
        "merged": result.merged,
    }


# ------------------------------------------------------------------
# Stored base status
# ------------------------------------------------------------------


def format_base_status(
    library_name: str, meta: dict[str, Any] | None
) -> str:
    """Format the bookkeeping of a stored base (see ``BaseStore.meta``).

    Args:
        library_name: The library name.
        meta: ``BaseStore.meta()`` output, ``None`` when nothing is stored.

    Returns:
        Multi-line formatted string.
    """
    lines = [f"Stored base for '{library_name}'"]
    if meta is None:
        lines.append(
            "  None yet; the next merge treats every reference as added."
        )
        return "\n".join(lines)
    lines.append(f"  Saved at:   {meta['saved_at'] or 'unknown'}")
    lines.append(f"  References: {meta['count']}")
    lines.append(f"  Hash:       {meta['hash'] or 'unknown'}")
    return "\n".join(lines)

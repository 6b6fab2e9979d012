"""CSL-JSON item builders shared by the test modules."""

BASE_TS = "2024-01-01T00:00:00.000Z"
T_LOCAL = "2024-01-02T10:00:00.000Z"
T_REMOTE = "2024-01-02T15:00:00.000Z"


def build_item(
    citation_key: str = "smith2023",
    *,
    uuid: str | None = None,
    stable: bool = True,
    timestamp: str | None = BASE_TS,
    created_at: str | None = BASE_TS,
    **fields,
) -> dict:
    """Build a CSL-JSON item.

    ``uuid`` defaults to one derived from the citation key; pass
    ``stable=False`` for an item without ``custom.uuid``.
    """
    item = {
        "id": citation_key,
        "type": "article-journal",
        "title": "Original Title",
        "author": [{"family": "Smith", "given": "John"}],
        "issued": {"date-parts": [[2023]]},
    }
    item.update(fields)
    custom: dict = {}
    if stable:
        custom["uuid"] = uuid or f"uuid-{citation_key}"
    if created_at is not None:
        custom["created_at"] = created_at
    if timestamp is not None:
        custom["timestamp"] = timestamp
    if custom:
        item["custom"] = custom
    return item


def edited(item: dict, timestamp: str, **fields) -> dict:
    """Return a copy of *item* with *fields* changed and a new timestamp."""
    changed = {**item, **fields}
    changed["custom"] = {**item.get("custom", {}), "timestamp": timestamp}
    return changed

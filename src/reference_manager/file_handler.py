"""File handler module: encoding-aware reading and writing of library snapshots.

A snapshot file is a CSL-JSON array of reference objects, as written by
the reference manager or exported by other tools.  Exports from other
tools are not always UTF-8, so files are decoded with encoding detection.
"""

import json
from pathlib import Path

from charset_normalizer import from_bytes

from reference_manager.sync.models import Record, Snapshot

# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content.lstrip("\ufeff"), encoding)


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write content to a file, creating parent directories as needed.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


# =============================================================================
# Snapshots
# =============================================================================


def load_snapshot(path: Path) -> list[Record]:
    """Load a CSL-JSON library file.

    Args:
        path: Path to a JSON file holding an array of objects.

    Returns:
        The records, in file order.

    Raises:
        ValueError: If the file is missing, is not valid JSON, or is not
            an array of objects.
    """
    if not path.is_file():
        raise ValueError(f"Library file not found: {path}")

    content, _ = read_file_with_encoding(path)
    if not content.strip():
        return []

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, list):
        raise ValueError(
            f"Invalid library file {path}: expected a JSON array, "
            f"got {type(data).__name__}"
        )
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(
                f"Invalid library file {path}: item {position} is "
                f"{type(item).__name__}, expected an object"
            )
    return data


def write_snapshot(path: Path, records: Snapshot) -> int:
    """Write *records* as a pretty-printed CSL-JSON array.

    Returns:
        Number of bytes written.
    """
    content = json.dumps(list(records), indent=2, ensure_ascii=False)
    return write_file(path, content + "\n")

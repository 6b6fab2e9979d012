"""
Config file discovery and layering for reference_manager.

A config file is a YAML mapping of sections, ``sync`` and ``logging``
(see ``config_schema``).  Up to three files are consulted, highest
precedence first:

    1. The file named by ``REFMGR_CONFIG``
    2. ``.reference_manager/config.yml`` in the current directory (project)
    3. ``~/.config/reference_manager/config.yml`` (user)

Layering is per setting, not per file: a project file that only sets
``sync.library`` keeps the user's ``sync.prefer`` and ``logging.level``.

String settings may reference environment variables as ``${VAR}`` or
``${VAR:-default}``, so a project file shared between machines can point
``sync.state_dir`` somewhere machine-specific.

Usage:
    from reference_manager.config_loader import load_hierarchical_config

    sections = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".reference_manager"
CONFIG_FILE_NAME = "config.yml"

Sections = dict[str, dict[str, Any]]

_ENV_REF = re.compile(
    r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}"
)


def expand_env_refs(text: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` references in *text*.

    An unset or empty variable expands to its default, or to ``""``.
    Text that is not a complete reference is left as-is.
    """

    def _lookup(match: re.Match) -> str:
        return os.environ.get(match["name"]) or match["default"] or ""

    return _ENV_REF.sub(_lookup, text)


def _expand_section(section: dict[str, Any]) -> dict[str, Any]:
    # settings are flat scalars, so one level is enough
    return {
        key: expand_env_refs(value) if isinstance(value, str) else value
        for key, value in section.items()
    }


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return the config files that exist, highest precedence first."""
    candidates: list[Path] = []

    explicit = os.environ.get("REFMGR_CONFIG")
    if explicit:
        path = Path(explicit).expanduser()
        if path.is_file():
            candidates.append(path)
        else:
            logger.warning("REFMGR_CONFIG points to a missing file: %s", path)

    for path in (
        Path.cwd() / CONFIG_DIR_NAME / CONFIG_FILE_NAME,
        Path.home() / ".config" / "reference_manager" / CONFIG_FILE_NAME,
    ):
        if path.is_file():
            candidates.append(path)

    return candidates


# ---------------------------------------------------------------------------
# Reading and layering
# ---------------------------------------------------------------------------


def read_config_file(path: Path) -> Sections:
    """Parse one config file into its sections.

    Empty files and empty sections are allowed.

    Raises:
        ValueError: If the file is not valid YAML, or its root or one of
            its sections is not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Config file {path} must be a mapping of sections, "
            f"got {type(data).__name__}"
        )

    sections: Sections = {}
    for name, body in data.items():
        if body is None:
            continue
        if not isinstance(body, dict):
            raise ValueError(
                f"Section '{name}' in config file {path} must be a mapping, "
                f"got {type(body).__name__}"
            )
        sections[str(name)] = body
    return sections


def load_hierarchical_config() -> Sections:
    """Load all discovered config files and layer them setting by setting.

    Returns:
        Section name to settings, with env references expanded.  An empty
        dict when no config file exists.

    Raises:
        ValueError: If any discovered file is malformed.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: Sections = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        for name, settings in read_config_file(path).items():
            merged.setdefault(name, {}).update(settings)

    return {name: _expand_section(body) for name, body in merged.items()}

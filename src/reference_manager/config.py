"""Runtime configuration for library synchronisation.

Resolves sync settings from CLI args, environment variables, .env files,
and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    REFMGR_PREFER: Tie-break for equal timestamps, "local" or "remote" (optional)
    REFMGR_STATE_DIR: Directory for stored base snapshots (optional)
    REFMGR_LIBRARY: Library name (optional, default: default)
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from reference_manager.sync.models import MergeOptions, PreferOption
from reference_manager.sync.resolver import parse_prefer_option

logger = logging.getLogger(__name__)

_LIBRARY_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass
class Config:
    prefer: PreferOption | None = None
    state_dir: Path = Path(".reference_manager")
    library: str = "default"

    def merge_options(self) -> MergeOptions:
        return MergeOptions(prefer=self.prefer)


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the library name is unusable as a filename part or
            the state directory points at a file.
    """
    if not _LIBRARY_NAME.match(config.library):
        raise ValueError(
            f"Invalid library name '{config.library}': "
            "use letters, digits, '.', '_' or '-'"
        )

    if config.state_dir.exists() and not config.state_dir.is_dir():
        raise ValueError(
            f"State directory '{config.state_dir}' exists and is not a directory"
        )

    if config.prefer is not None:
        logger.debug(
            "Equal-timestamp conflicts will prefer %s", config.prefer.value
        )


def load_config(
    prefer: str | None = None,
    state_dir: str | None = None,
    library: str | None = None,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        prefer: Override tie-break preference.
        state_dir: Override base snapshot directory.
        library: Override library name.
        yaml_fallbacks: Dict of values from the YAML config ``sync``
            section.  Used when CLI arg and env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is invalid after checking all sources.
    """
    fb = yaml_fallbacks or {}

    final_prefer = parse_prefer_option(
        prefer or os.getenv("REFMGR_PREFER") or fb.get("prefer")
    )

    final_state_dir = (
        state_dir
        or os.getenv("REFMGR_STATE_DIR")
        or fb.get("state_dir")
        or ".reference_manager"
    )

    final_library = (
        library
        or os.getenv("REFMGR_LIBRARY")
        or fb.get("library")
        or "default"
    ).strip()

    config = Config(
        prefer=final_prefer,
        state_dir=Path(final_state_dir).expanduser(),
        library=final_library,
    )

    validate_config(config)

    return config

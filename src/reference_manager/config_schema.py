"""Unified configuration schema for reference_manager.

Defines Pydantic models for the config file structure, with dedicated
sections for synchronisation and logging.

Usage:
    from reference_manager.config_loader import load_hierarchical_config
    from reference_manager.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncConfig(BaseModel):
    """Library synchronisation settings.

    Attributes:
        prefer: Tie-break when local and remote timestamps are equal.
            ``None`` reports such conflicts as unresolved.
        state_dir: Directory holding the stored base snapshots.
        library: Default library name (selects the base file).
    """

    prefer: Literal["local", "remote"] | None = Field(
        default=None,
        description="Tie-break for equal timestamps (local or remote)",
    )
    state_dir: str = Field(
        default=".reference_manager",
        description="Directory for stored base snapshots",
    )
    library: str = Field(
        default="default",
        min_length=1,
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Library name used in the base filename",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``"text"`` or ``"json"``.
    """

    level: str = Field(default="WARNING", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log line format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully -- anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.

    Raises:
        pydantic.ValidationError: If a section holds invalid values.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)

import json
import logging
import os
import sys

_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for structured output.

    Produces one JSON object per log record with fields: ts, level, logger, msg.
    Exception info is included as an "exc" field when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(log_format: str, with_name: bool) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    if with_name:
        return logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s %(message)s",
            datefmt=_DATEFMT,
        )
    return logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt=_DATEFMT,
    )


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    log_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure logging for the command line tool.

    Log records always go to stderr so that stdout stays free for the
    merge report or JSON output.  A log file, when given, receives the
    same records.

    Args:
        debug: If True, overrides every other level setting with DEBUG.
        log_file: Optional log file path (in addition to stderr).
        log_format: "text" (default) or "json" for structured output.
        level: Level name from the config file; REFMGR_LOG_LEVEL wins over it.

    Environment variables:
        REFMGR_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                          Default: WARNING.
    """
    env_level = os.getenv("REFMGR_LOG_LEVEL", level or "WARNING").upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.WARNING)

    handlers: list[logging.Handler] = []
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(_make_formatter(log_format, with_name=False))
    handlers.append(stderr_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(_make_formatter(log_format, with_name=True))
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
    )

    # Encoding detection is chatty at INFO
    if log_level != logging.DEBUG:
        logging.getLogger("charset_normalizer").setLevel(logging.WARNING)

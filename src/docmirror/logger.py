import json
import logging
import os
import sys

_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for structured output.

    Produces one JSON object per log record with fields: ts, level, logger,
    thread, msg.  Exception info is included as an "exc" field when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
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
        "[%(asctime)s] [%(levelname)s] %(message)s", datefmt=_DATEFMT
    )


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    log_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure logging for a sync run.

    Records go to stderr; when *log_file* is given they are also appended
    to that file (with the logger name, so per-module output can be told
    apart when refs sync in parallel).

    Args:
        debug: If True, overrides every other level setting with DEBUG.
        log_file: Optional log file path.
        log_format: "text" (default) or "json" for structured output.
        level: Level name from the config file ``logging.level``.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Takes precedence over *level*.  Default: INFO.
    """
    level_name = (os.getenv("LOG_LEVEL") or level or "INFO").upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, level_name, logging.INFO)

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

    # Silence HTTP client internals unless DEBUG
    if log_level != logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)

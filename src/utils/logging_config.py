"""
JSON logging for the chat service.

Every record under the ``persona`` namespace is written as one JSON object
per line.  Pipeline fields passed through ``extra=`` (the character being
answered, the refusal reason, the provider and model involved) are lifted
to top-level keys so the log can be filtered per character or per reason.

    logger = get_logger("persona.chat")
    log = CharacterAdapter(logger, character="captain-nova")
    log.info("Model declined to answer", extra={"reason": "model_refusal"})
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping, Optional

NAMESPACE = "persona"

# Record attributes promoted to top-level JSON keys when present.
PIPELINE_FIELDS = ("character", "reason", "provider", "model", "duration_ms", "metadata")


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (field, getattr(record, field))
            for field in PIPELINE_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class CharacterAdapter(logging.LoggerAdapter):
    """Stamps ``character`` on every record; per-call extras are kept."""

    def __init__(self, logger: logging.Logger, character: str):
        super().__init__(logger, {"character": character})

    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


_CONFIGURED = False


def setup_logging(log_file: Optional[str] = None, level: Optional[str] = None) -> None:
    """Attach the JSON handlers to the ``persona`` logger once per process.

    ``log_file`` and ``level`` default to ``server_log_file`` / ``log_level``
    from settings.  An empty ``log_file`` disables the file sink.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    if log_file is None or level is None:
        from src.config import get_settings
        settings = get_settings()
        log_file = settings.server_log_file if log_file is None else log_file
        level = settings.log_level if level is None else level

    root = logging.getLogger(NAMESPACE)
    root.setLevel(level.upper())
    root.propagate = False

    formatter = JSONFormatter()
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # warnings and above also go to stderr
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.WARNING)
    root.addHandler(stderr_handler)


def get_logger(name: str = NAMESPACE) -> logging.Logger:
    setup_logging()
    if name == NAMESPACE or name.startswith(NAMESPACE + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{NAMESPACE}.{name}")

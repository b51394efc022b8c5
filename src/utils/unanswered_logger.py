"""
Append-only JSONL log of questions the service could not answer.

One JSON object per line: ``{"timestamp", "character", "message", "reason"}``.
Writing is best-effort: any failure is reported through the application
logger and never reaches the chat response.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from src.schemas.chat import UnansweredRecord
from src.utils.logging_config import get_logger

logger = get_logger("persona.unanswered")

# Refusal / failure reasons
EMPTY_CONTEXT = "empty_context"
MODEL_REFUSAL = "model_refusal"
SAFETY_REFUSAL = "safety_refusal"
OPENAI_ERROR = "openai_error"
GEMINI_ERROR = "gemini_error"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class UnansweredRecorder:
    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _ensure_log_file(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)

    def record(self, character: str, message: str, reason: str) -> None:
        self.write(UnansweredRecord(
            timestamp=utc_timestamp(),
            character=character,
            message=message,
            reason=reason,
        ))

    def write(self, record: UnansweredRecord) -> None:
        missing = [k for k, v in record.model_dump().items() if not v]
        if missing:
            logger.error("Unanswered record missing fields %s: %s", missing, record.model_dump())
            return

        line = json.dumps(record.model_dump(), ensure_ascii=False) + "\n"
        try:
            self._ensure_log_file()
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)
        except Exception as e:
            # Never break a chat response because of the log sink.
            logger.error("Failed to log unanswered question: %s | record=%s", e, line.strip(),
                         extra={"reason": record.reason})

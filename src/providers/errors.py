"""
Provider error types and failure classification.

Every failure coming out of a provider wrapper is a :class:`ProviderError`.
:func:`classify_failure` is the one place that decides what a failure means
for the fallback logic; the substring heuristics live here and nowhere else.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class FailureCategory(str, Enum):
    QUOTA = "quota"                      # exhausted quota, rate limited, or no credentials
    MODEL_NOT_FOUND = "model_not_found"  # HTTP 404 for the requested model
    FATAL = "fatal"


# Matched case-insensitively against the error text.
QUOTA_MARKERS = (
    "insufficient_quota",
    "error 429",
    "error code: 429",
    "missing openai_api_key",
)

RATE_LIMIT_STATUS = 429
NOT_FOUND_STATUS = 404


class ProviderError(Exception):
    """A single provider call failed."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.status_code = status_code


class ProviderFatalError(Exception):
    """The primary provider failed in a way that does not warrant fallback."""

    def __init__(self, primary_message: str):
        super().__init__(f"OpenAI failed: {primary_message}")
        self.primary_message = primary_message


class ProviderExhaustedError(Exception):
    """Both the primary and the secondary provider failed."""

    def __init__(self, primary_message: str, secondary_message: str):
        super().__init__(
            f"OpenAI failed: {primary_message}. Gemini failed: {secondary_message}"
        )
        self.primary_message = primary_message
        self.secondary_message = secondary_message


def error_message(error: BaseException) -> str:
    message = getattr(error, "message", None) or str(error)
    return str(message) if message else type(error).__name__


def classify_failure(error: BaseException) -> FailureCategory:
    status = getattr(error, "status_code", None)
    if status == NOT_FOUND_STATUS:
        return FailureCategory.MODEL_NOT_FOUND
    if status == RATE_LIMIT_STATUS:
        return FailureCategory.QUOTA

    text = error_message(error).lower()
    if any(marker in text for marker in QUOTA_MARKERS):
        return FailureCategory.QUOTA
    return FailureCategory.FATAL

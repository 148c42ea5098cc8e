"""Deterministic mapping of raw failures onto user-presentable error kinds."""

from __future__ import annotations

import re
from typing import Any

from models import ClassifiedError, ErrorKind, RawError
from models.errors import UNEXPECTED_ERROR_MESSAGE

RATE_LIMIT_CODE_MARKER = "429"
RATE_LIMIT_STATUS_MARKER = "RESOURCE_EXHAUSTED"
NOT_FOUND_MARKER = "Requested entity was not found"
RATE_LIMIT_DOCS_URL = "https://ai.google.dev/gemini-api/docs/rate-limits"

RATE_LIMIT_MESSAGE = (
    "You've exceeded your current API quota (Rate Limit). This is a usage limit on "
    "Google's servers. Please check your plan and billing details, or try again after "
    f"some time. For more information, visit the Gemini API rate limits documentation: {RATE_LIMIT_DOCS_URL}"
)

# JSON ("message": "...") or Python-repr ('message': '...') fragments.
_MESSAGE_FIELD_RE = re.compile(r"""["']message["']\s*:\s*(["'])(.*?)(?<!\\)\1""")


def _message_from_details(details: Any) -> str | None:
    if not isinstance(details, dict):
        return None
    error = details.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
        return error["message"]
    message = details.get("message")
    if isinstance(message, str) and message:
        return message
    return None


def extract_inner_message(raw: RawError) -> str | None:
    """Inner `message` of a structured payload, from details first, then the text."""
    message = _message_from_details(raw.details)
    if message:
        return message
    match = _MESSAGE_FIELD_RE.search(raw.message)
    if match and match.group(2):
        return match.group(2)
    return None


def classify(raw: RawError | BaseException, model: str | None = None) -> ClassifiedError:
    """
    Classify a raw failure.

    Priority: rate limit (429 + RESOURCE_EXHAUSTED), then missing entity, then
    an embedded `message` field, then the raw text. Rules 3 and 4 keep the
    stage's own kind hint when it has one.
    """
    if not isinstance(raw, RawError):
        raw = RawError.from_exception(raw)
    text = raw.text

    if RATE_LIMIT_CODE_MARKER in text and RATE_LIMIT_STATUS_MARKER in text:
        return ClassifiedError(kind=ErrorKind.RATE_LIMIT, message=RATE_LIMIT_MESSAGE, cause=raw)

    if NOT_FOUND_MARKER in text:
        model_in_use = model or raw.model or "the model"
        return ClassifiedError(
            kind=ErrorKind.NOT_FOUND,
            message=f"Error: The model '{model_in_use}' was not found. Please check the model name.",
            cause=raw,
        )

    kind = raw.kind or ErrorKind.UNKNOWN
    message = extract_inner_message(raw) or raw.message or UNEXPECTED_ERROR_MESSAGE
    return ClassifiedError(kind=kind, message=message, cause=raw)

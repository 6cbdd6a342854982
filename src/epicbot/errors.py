"""Error taxonomy & redaction.

Every failure EpicBot raises on purpose derives from :class:`EpicBotError` so
the CLI can turn it into a single failure annotation for the workflow run.

Public API:
- ConfigurationError / LookupMismatchError / TransportError
- classify_error(exc) -> ErrorInfo
- redact(text) -> str

Unparsable checklist lines and Epics without a workload section are not
errors; the synchronizer simply skips them.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"ghs_[A-Za-z0-9]{20,40}"),  # Actions installation tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"(?i)bearer\s+[A-Za-z0-9_\-\.]{20,}"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class EpicBotError(RuntimeError):
    """Base class for fatal EpicBot failures."""


class ConfigurationError(EpicBotError):
    pass


class LookupMismatchError(EpicBotError):
    """A fetched issue does not carry the number that was requested."""

    def __init__(self, requested: int, received: int, epic_number: int | None = None):
        where = f" referenced in Epic #{epic_number}" if epic_number is not None else ""
        super().__init__(
            f"task #{requested}{where} resolved to issue #{received}; refusing to update"
        )
        self.requested = requested
        self.received = received
        self.epic_number = epic_number


class TransportError(EpicBotError):
    """Raised when a call to the issue tracker fails."""


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Replace token-looking substrings with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception for the structured log.

    Explicit EpicBot types map directly; transport failures are refined by
    message keywords (rate limit, network) so operators can tell a flaky run
    from a broken configuration.
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__

    if isinstance(exc, ConfigurationError):
        return ErrorInfo("config", redact(msg), name)
    if isinstance(exc, LookupMismatchError):
        return ErrorInfo(
            "lookup",
            redact(msg),
            name,
            details={"requested": exc.requested, "received": exc.received},
        )
    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if isinstance(exc, TransportError):
        status = getattr(exc, "status", None)
        return ErrorInfo(
            "transport",
            redact(msg),
            name,
            details={"status": status} if status is not None else None,
        )
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "EpicBotError",
    "ConfigurationError",
    "LookupMismatchError",
    "TransportError",
    "ErrorInfo",
    "classify_error",
    "redact",
]

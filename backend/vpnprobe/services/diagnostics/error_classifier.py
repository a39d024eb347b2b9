from __future__ import annotations

"""backend/vpnprobe/services/diagnostics/error_classifier.py

Centralized error classification for connection attempts.

This module looks at the text captured from an OpenVPN client run and
derives:

- a short excerpt of the lines most likely to explain a failure
  (``extract_relevant``)
- a human-readable error category (``classify_error``)
- the category shown in the report for a whole AttemptResult
  (``classify_attempt_failure``)

The classification is:
- deterministic (no randomness, no I/O)
- text-based (pattern matching against known OpenVPN log signatures)
- deferred: the runner never decides failure from these keywords, it only
  records the output and lets the caller classify it afterwards

Categories:
- Authentication failed
- TLS handshake failed
- DNS resolution failed
- Connection failed
- Timeout exceeded (<N>s)
- Failed to start: <os error>
"""

from typing import Optional

from vpnprobe.models import AttemptResult

NO_OUTPUT = "No output captured"

AUTH_FAILED = "Authentication failed"
TLS_FAILED = "TLS handshake failed"
DNS_FAILED = "DNS resolution failed"
CONNECTION_FAILED = "Connection failed"

# Failure reasons set by the runner layer.
REASON_TIMEOUT = "timeout"
REASON_SPAWN = "process-spawn-error"
REASON_EXIT = "process-exit-error"

_RELEVANT_KEYWORDS = [
    "error",
    "warning",
    "verify",
    "auth",
    "failed",
    "cannot",
    "unable",
    "tls error",
    "resolve",
]


def _text(value: Optional[str]) -> str:
    return (value or "").strip()


def _contains_any(haystack: str, needles: list[str]) -> bool:
    return any(n in haystack for n in needles)


def _tail(lines: list[str], count: int) -> list[str]:
    if count <= 0:
        return []
    return lines[-count:]


def extract_relevant(output: str, tail_lines: int) -> str:
    """Return the diagnostic lines of ``output``.

    Lines mentioning any known problem keyword (case-insensitive) win; only
    the last ``tail_lines`` of them are kept, in their original order. When
    no line matches, the last ``tail_lines`` raw lines are returned instead.
    """
    if not output:
        return NO_OUTPUT

    all_lines = output.splitlines()
    relevant = [line for line in all_lines if _contains_any(line.lower(), _RELEVANT_KEYWORDS)]

    if relevant:
        return "\n".join(_tail(relevant, tail_lines))

    # Nothing looked like an error; show how the log ended instead.
    return "\n".join(_tail(all_lines, tail_lines))


def classify_error(output: str) -> str:
    """Derive a human-readable error category from raw client output.

    Checks run in a fixed priority order; it never returns an empty string.
    """
    upper = (output or "").upper()

    # 1) Credentials rejected by the server
    if "AUTH_FAILED" in upper:
        return AUTH_FAILED

    # 2) TLS negotiation problems
    if _contains_any(upper, ["TLS ERROR", "TLS HANDSHAKE"]):
        return TLS_FAILED

    # 3) Remote host name could not be resolved
    if "RESOLVE" in upper:
        return DNS_FAILED

    # 4) Generic fallback
    return CONNECTION_FAILED


def classify_attempt_failure(result: AttemptResult) -> str:
    """Classify a failed AttemptResult into its report category.

    Runner-level reasons (timeout, spawn failure) are respected as-is. Any
    other failure is classified from the captured text; the client's exit
    code alone is not a reliable signal.
    """
    reason = _text(result.failure_reason)

    if reason == REASON_TIMEOUT:
        if result.timeout_seconds is not None:
            return f"Timeout exceeded ({result.timeout_seconds:g}s)"
        return "Timeout exceeded"

    if reason == REASON_SPAWN:
        return f"Failed to start: {_text(result.error) or 'unknown error'}"

    return classify_error(result.output)

"""Core types and DTOs for the Gemini dispatch gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Disposition(str, Enum):
    """What the dispatcher should do after a non-2xx transport result."""

    RETRY_SAME = "retry_same"  # 503 — back off and retry the same credential
    FAILOVER = "failover"  # 429 — quota spent, move to the next credential
    FATAL = "fatal"  # any other non-2xx — stop the whole dispatch
    NETWORK_FAILURE = "network_failure"  # no HTTP response at all


class OutcomeKind(str, Enum):
    """Failure kinds surfaced on a failed Outcome."""

    CONFIGURATION_ERROR = "configuration_error"
    NETWORK_FAILURE = "network_failure"
    TRANSIENT_SERVICE_ERROR = "transient_service_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    FATAL_SERVICE_ERROR = "fatal_service_error"
    TIMEOUT = "timeout"
    EXHAUSTED = "exhausted"  # pool ran out without any recorded error


class DispatchState(str, Enum):
    """States of the per-request dispatch state machine."""

    PER_CREDENTIAL_ATTEMPT = "per_credential_attempt"
    BACKOFF_WAIT = "backoff_wait"
    ADVANCE_CREDENTIAL = "advance_credential"
    SUCCEEDED = "succeeded"
    FATAL_STOP = "fatal_stop"
    EXHAUSTED = "exhausted"
    TIMED_OUT = "timed_out"


TERMINAL_STATES = frozenset(
    {
        DispatchState.SUCCEEDED,
        DispatchState.FATAL_STOP,
        DispatchState.EXHAUSTED,
        DispatchState.TIMED_OUT,
    }
)


# ---------------------------------------------------------------------------
# Credential
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Credential:
    """An API key plus its position in the pool."""

    secret: str
    index: int

    @property
    def masked(self) -> str:
        if len(self.secret) <= 8:
            return "***"
        return f"{self.secret[:4]}...{self.secret[-4:]}"

    def __repr__(self) -> str:
        return f"Credential(index={self.index}, secret={self.masked!r})"


# ---------------------------------------------------------------------------
# Outbound request — input to the dispatcher
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Content:
    """One conversation turn: a role and its text parts."""

    role: str
    parts: tuple[str, ...]

    def to_payload(self) -> dict:
        return {"role": self.role, "parts": [{"text": text} for text in self.parts]}


@dataclass(frozen=True)
class OutboundRequest:
    """A fully-formed generateContent request.

    ``force_json`` asks Gemini for ``application/json`` output; it is used by
    the structured-extraction route.
    """

    contents: tuple[Content, ...]
    force_json: bool = False

    def __post_init__(self) -> None:
        if not self.contents:
            raise ValueError("OutboundRequest needs at least one content entry")

    @classmethod
    def from_prompt(
        cls,
        user_text: str,
        system_text: str = "",
        force_json: bool = False,
    ) -> OutboundRequest:
        """Build the single-turn request the HTTP routes send.

        System instructions are folded into the user turn ahead of the
        user's text.
        """
        text = f"{system_text}\n\nUser request:\n{user_text}" if system_text else user_text
        return cls(contents=(Content(role="user", parts=(text,)),), force_json=force_json)

    def to_payload(self) -> dict:
        payload: dict[str, Any] = {"contents": [c.to_payload() for c in self.contents]}
        if self.force_json:
            payload["generationConfig"] = {"response_mime_type": "application/json"}
        return payload


# ---------------------------------------------------------------------------
# Attempt / transport result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Attempt:
    """One try against one credential."""

    credential_index: int
    attempt_number: int  # 1-based, per credential
    scheduled_delay: float = 0.0  # seconds waited before this attempt


@dataclass
class TransportResult:
    """What a single HTTP call produced.

    ``status_code`` is ``None`` when no HTTP response was obtained; ``error``
    then holds the transport exception.
    """

    status_code: int | None = None
    body: str = ""
    error: Exception | None = None

    @property
    def is_success(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300


# ---------------------------------------------------------------------------
# Outcome — output of the dispatcher
# ---------------------------------------------------------------------------


@dataclass
class Outcome:
    """Result of a whole dispatch: exactly one per request."""

    ok: bool
    status_code: int = 0
    raw_body: str = ""
    kind: OutcomeKind | None = None  # None on success
    credential_index: int | None = None
    attempts: list[Attempt] = field(default_factory=list)

    @classmethod
    def success(cls, status_code: int, raw_body: str) -> Outcome:
        return cls(ok=True, status_code=status_code, raw_body=raw_body)

    @classmethod
    def failure(cls, kind: OutcomeKind, status_code: int = 0, raw_body: str = "") -> Outcome:
        return cls(ok=False, status_code=status_code, raw_body=raw_body, kind=kind)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict for logs/API."""
        return {
            "ok": self.ok,
            "status_code": self.status_code,
            "raw_body": self.raw_body,
            "kind": self.kind.value if self.kind else None,
            "credential_index": self.credential_index,
            "attempts": len(self.attempts),
        }


# ---------------------------------------------------------------------------
# Dispatcher config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DispatcherConfig:
    """Retry, backoff and deadline parameters for a dispatch.

    The per-call HTTP timeout belongs to GeminiTransport.
    """

    max_retries_per_credential: int = 2  # 2 → up to 3 attempts per credential
    base_retry_delay: float = 1.5  # Seconds before the first retry
    backoff_multiplier: float = 2.0
    max_retry_delay: float = 30.0  # Cap on a single backoff wait
    deadline_seconds: float | None = None  # Overall budget for one dispatch

    def backoff_delay(self, attempt_number: int) -> float:
        """Delay before the retry that follows ``attempt_number`` (1-based)."""
        delay = self.base_retry_delay * (self.backoff_multiplier ** (attempt_number - 1))
        return min(delay, self.max_retry_delay)

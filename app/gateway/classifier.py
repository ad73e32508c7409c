"""Error classifier — maps a transport result to a retry disposition.

This is the only place that decides which HTTP statuses are retried,
failed over or treated as fatal:

  - no response (connection error, read timeout)  → NETWORK_FAILURE
  - 503 Service Unavailable                        → RETRY_SAME
  - 429 Too Many Requests / quota exhausted        → FAILOVER
  - anything else outside 2xx                      → FATAL
"""

from __future__ import annotations

from app.gateway.types import Disposition, OutcomeKind, TransportResult

RETRY_SAME_STATUSES = frozenset({503})
FAILOVER_STATUSES = frozenset({429})

_OUTCOME_KINDS: dict[Disposition, OutcomeKind] = {
    Disposition.RETRY_SAME: OutcomeKind.TRANSIENT_SERVICE_ERROR,
    Disposition.FAILOVER: OutcomeKind.QUOTA_EXCEEDED,
    Disposition.FATAL: OutcomeKind.FATAL_SERVICE_ERROR,
    Disposition.NETWORK_FAILURE: OutcomeKind.NETWORK_FAILURE,
}


def classify(result: TransportResult) -> Disposition:
    """Classify a failed transport result.

    Raises:
        ValueError: for 2xx results, which are successes and never classified.
    """
    if result.status_code is None:
        return Disposition.NETWORK_FAILURE
    if result.is_success:
        raise ValueError(f"Status {result.status_code} is a success, not a failure")
    if result.status_code in RETRY_SAME_STATUSES:
        return Disposition.RETRY_SAME
    if result.status_code in FAILOVER_STATUSES:
        return Disposition.FAILOVER
    return Disposition.FATAL


def outcome_kind(disposition: Disposition) -> OutcomeKind:
    """Failure kind reported when a disposition ends up on the final Outcome."""
    return _OUTCOME_KINDS[disposition]

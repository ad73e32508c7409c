"""Dispatcher — sends one OutboundRequest through the credential pool.

State machine (one run per request, nothing shared but the pool):

    PER_CREDENTIAL_ATTEMPT ──2xx──────────────► SUCCEEDED
        │  ├──fatal status──────────────────► FATAL_STOP
        │  ├──503, budget left──► BACKOFF_WAIT ──► PER_CREDENTIAL_ATTEMPT
        │  └──429 / network / 503 budget spent──► ADVANCE_CREDENTIAL
        │                                             ├──► PER_CREDENTIAL_ATTEMPT (next key)
        │                                             └──► EXHAUSTED (last error)
        └──deadline elapsed (call or backoff)────────────► TIMED_OUT

Backoff strategy:
  delay = min(base * multiplier^(attempt - 1), max_delay)

The transition functions below are pure over a DispatchRun so retry budget
and credential advance can be tested without any I/O.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from app.core.metrics import DISPATCH_ATTEMPTS, DISPATCH_OUTCOMES
from app.gateway.classifier import classify, outcome_kind
from app.gateway.credentials import CredentialPool
from app.gateway.transport import GeminiTransport
from app.gateway.types import (
    TERMINAL_STATES,
    Attempt,
    Disposition,
    DispatcherConfig,
    DispatchState,
    OutboundRequest,
    Outcome,
    OutcomeKind,
    TransportResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], float]


@dataclass
class DispatchRun:
    """Mutable per-request state of one dispatch."""

    pool_size: int
    state: DispatchState = DispatchState.PER_CREDENTIAL_ATTEMPT
    credential_index: int = 0
    attempt_number: int = 1
    delay: float = 0.0  # wait before the next attempt
    last_disposition: Disposition | None = None
    last_error: Outcome | None = None
    result: Outcome | None = None
    attempts: list[Attempt] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def after_attempt(run: DispatchRun, result: TransportResult, config: DispatcherConfig) -> DispatchState:
    """Decide the next state from the result of one network call."""
    if result.is_success:
        run.last_disposition = None
        run.result = Outcome.success(result.status_code, result.body)
        run.result.credential_index = run.credential_index
        return DispatchState.SUCCEEDED

    disposition = classify(result)
    run.last_disposition = disposition

    body = result.body
    if result.error is not None and not body:
        body = f"{type(result.error).__name__}: {result.error}"
    failure = Outcome.failure(outcome_kind(disposition), result.status_code or 0, body)
    failure.credential_index = run.credential_index

    if disposition == Disposition.FATAL:
        run.result = failure
        return DispatchState.FATAL_STOP

    run.last_error = failure

    if disposition == Disposition.RETRY_SAME and run.attempt_number <= config.max_retries_per_credential:
        run.delay = config.backoff_delay(run.attempt_number)
        return DispatchState.BACKOFF_WAIT

    return DispatchState.ADVANCE_CREDENTIAL


def after_backoff(run: DispatchRun) -> DispatchState:
    run.attempt_number += 1
    return DispatchState.PER_CREDENTIAL_ATTEMPT


def advance(run: DispatchRun) -> DispatchState:
    """Move to the next credential, or finish with the last recorded error."""
    if run.credential_index + 1 < run.pool_size:
        run.credential_index += 1
        run.attempt_number = 1
        run.delay = 0.0
        return DispatchState.PER_CREDENTIAL_ATTEMPT

    run.result = run.last_error or Outcome.failure(OutcomeKind.EXHAUSTED, raw_body="All credentials failed")
    return DispatchState.EXHAUSTED


def time_out(run: DispatchRun, deadline: float | None) -> DispatchState:
    run.result = Outcome.failure(OutcomeKind.TIMEOUT, raw_body=f"Dispatch deadline of {deadline}s exceeded")
    run.result.credential_index = run.credential_index
    return DispatchState.TIMED_OUT


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class Dispatcher:
    """Runs the retry/failover state machine for a single request.

    Usage:
        dispatcher = Dispatcher(pool, transport, DispatcherConfig())
        outcome = await dispatcher.dispatch(request, deadline=30.0)
        if outcome.ok:
            reply = extract_reply(outcome.raw_body)
    """

    def __init__(
        self,
        pool: CredentialPool,
        transport: GeminiTransport,
        config: DispatcherConfig | None = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: ClockFunc = time.monotonic,
    ):
        self.pool = pool
        self.transport = transport
        self.config = config or DispatcherConfig()
        self._sleep = sleep
        self._clock = clock

    async def dispatch(self, request: OutboundRequest, deadline: float | None = None) -> Outcome:
        """Send ``request``, returning exactly one Outcome.

        Args:
            request: The payload to send.
            deadline: Overall budget in seconds; falls back to
                ``config.deadline_seconds``. ``None``/0 means no deadline.
        """
        if not self.pool:
            logger.error("Dispatch refused: credential pool is empty")
            outcome = Outcome.failure(OutcomeKind.CONFIGURATION_ERROR, raw_body="No credentials configured")
            DISPATCH_OUTCOMES.labels(kind=outcome.kind.value).inc()
            return outcome

        budget = deadline if deadline is not None else self.config.deadline_seconds
        deadline_at = self._clock() + budget if budget else None

        run = DispatchRun(pool_size=len(self.pool))

        while run.state not in TERMINAL_STATES:
            if run.state == DispatchState.PER_CREDENTIAL_ATTEMPT:
                credential = self.pool[run.credential_index]
                run.attempts.append(Attempt(credential.index, run.attempt_number, run.delay))
                try:
                    result = await self._within_deadline(self.transport.send(credential, request), deadline_at)
                except asyncio.TimeoutError:
                    logger.warning("Deadline hit during call on credential #%d", credential.index)
                    run.state = time_out(run, budget)
                    continue

                run.state = after_attempt(run, result, self.config)
                label = run.last_disposition.value if run.last_disposition else "success"
                DISPATCH_ATTEMPTS.labels(result=label).inc()

                if run.state == DispatchState.ADVANCE_CREDENTIAL:
                    logger.info(
                        "Credential #%d gave up (%s, status %s); advancing",
                        credential.index,
                        label,
                        result.status_code,
                    )

            elif run.state == DispatchState.BACKOFF_WAIT:
                logger.info(
                    "Retrying credential #%d (attempt %d/%d) in %.1fs",
                    run.credential_index,
                    run.attempt_number + 1,
                    self.config.max_retries_per_credential + 1,
                    run.delay,
                )
                try:
                    await self._within_deadline(self._sleep(run.delay), deadline_at)
                except asyncio.TimeoutError:
                    logger.warning("Deadline hit during backoff on credential #%d", run.credential_index)
                    run.state = time_out(run, budget)
                    continue
                run.state = after_backoff(run)

            elif run.state == DispatchState.ADVANCE_CREDENTIAL:
                run.state = advance(run)

        outcome = run.result
        outcome.attempts = run.attempts
        DISPATCH_OUTCOMES.labels(kind=outcome.kind.value if outcome.kind else "success").inc()

        if outcome.ok:
            logger.info(
                "Dispatch succeeded on credential #%s after %d attempt(s)",
                outcome.credential_index,
                len(outcome.attempts),
                extra={"credential_index": outcome.credential_index, "attempts": len(outcome.attempts)},
            )
        else:
            logger.warning(
                "Dispatch failed (%s, status %d) after %d attempt(s)",
                outcome.kind.value,
                outcome.status_code,
                len(outcome.attempts),
                extra={"outcome_kind": outcome.kind.value, "attempts": len(outcome.attempts)},
            )
        return outcome

    async def _within_deadline(self, aw: Awaitable[T], deadline_at: float | None) -> T:
        """Await ``aw``, raising asyncio.TimeoutError once the deadline passes."""
        if deadline_at is None:
            return await aw
        remaining = deadline_at - self._clock()
        if remaining <= 0:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise asyncio.TimeoutError
        return await asyncio.wait_for(aw, timeout=remaining)

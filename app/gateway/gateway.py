"""Gemini Gateway — wires the credential pool, transport and dispatcher.

Main entry point for the HTTP layer:
  1. Holds the read-only CredentialPool loaded at startup
  2. Builds a fresh Dispatcher for every request (no shared counters)
  3. Applies the configured deadline unless the caller passes one

Usage:
    gateway = GeminiGateway.from_settings(settings)
    outcome = await gateway.execute(OutboundRequest.from_prompt("Hello"))
"""

from __future__ import annotations

import asyncio

from app.core.config import Settings
from app.gateway.credentials import CredentialPool
from app.gateway.dispatcher import Dispatcher, SleepFunc
from app.gateway.transport import GeminiTransport
from app.gateway.types import DispatcherConfig, OutboundRequest, Outcome


class GeminiGateway:
    """Facade over the dispatch core, one instance per process."""

    def __init__(
        self,
        pool: CredentialPool,
        transport: GeminiTransport | None = None,
        config: DispatcherConfig | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.pool = pool
        self.transport = transport or GeminiTransport()
        self.config = config or DispatcherConfig()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> GeminiGateway:
        """Build the gateway from application settings.

        Raises:
            ConfigurationError: if no API key is configured.
        """
        pool = CredentialPool.load(settings.credential_source)
        transport = GeminiTransport(
            model=settings.gemini_model,
            api_base=settings.gemini_api_base,
            api_version=settings.gemini_api_version,
            timeout=settings.gemini_timeout_seconds,
        )
        config = DispatcherConfig(
            max_retries_per_credential=settings.max_retries_per_credential,
            base_retry_delay=settings.base_retry_delay,
            max_retry_delay=settings.max_retry_delay,
            deadline_seconds=settings.dispatch_deadline_seconds or None,
        )
        return cls(pool=pool, transport=transport, config=config)

    async def execute(self, request: OutboundRequest, deadline: float | None = None) -> Outcome:
        dispatcher = Dispatcher(self.pool, self.transport, self.config, sleep=self._sleep)
        return await dispatcher.dispatch(request, deadline=deadline)

    def get_status(self) -> dict:
        return {
            "credentials": len(self.pool),
            "model": self.transport.model,
            "max_retries_per_credential": self.config.max_retries_per_credential,
            "deadline_seconds": self.config.deadline_seconds,
        }

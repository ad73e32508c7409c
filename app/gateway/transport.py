"""Gemini transport — a single generateContent call with one credential.

Never raises for HTTP or connection problems: every call ends up as a
TransportResult, and the classifier decides what happens next.
"""

from __future__ import annotations

import logging
import time

import httpx

from app.gateway.types import Credential, OutboundRequest, TransportResult

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com"
DEFAULT_API_VERSION = "v1"
DEFAULT_MODEL = "gemini-1.5-flash-latest"


class GeminiTransport:
    """Google Generative Language API client for ``generateContent``."""

    api_url_template = "{base}/{version}/models/{model}:generateContent"

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_base: str = DEFAULT_API_BASE,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 60.0,
    ):
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout

    @property
    def url(self) -> str:
        return self.api_url_template.format(base=self.api_base, version=self.api_version, model=self.model)

    async def send(self, credential: Credential, request: OutboundRequest) -> TransportResult:
        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.url,
                    json=request.to_payload(),
                    params={"key": credential.secret},
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TransportError as e:
            logger.warning(
                "Gemini transport error on credential #%d after %dms: %s",
                credential.index,
                int((time.monotonic() - start) * 1000),
                type(e).__name__,
            )
            return TransportResult(error=e)

        logger.debug(
            "Gemini responded %d on credential #%d in %dms",
            resp.status_code,
            credential.index,
            int((time.monotonic() - start) * 1000),
        )
        return TransportResult(status_code=resp.status_code, body=resp.text)

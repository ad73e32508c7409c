"""Chat endpoints.

Provides:
  - POST /chat — free-form reply: {reply, raw}
  - POST /extract — JSON-mode reply parsed into an object: {data, reply, raw}
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends

from app.core.config import settings
from app.core.dependencies import get_gateway
from app.core.exceptions import BadRequestError, UpstreamError
from app.gateway.errors import ResponseParseError
from app.gateway.gateway import GeminiGateway
from app.gateway.normalizer import extract_finish_reason, extract_json, extract_reply, parse_body
from app.gateway.types import OutboundRequest, Outcome
from app.schemas.chat import ChatReply, ChatRequest, ExtractReply

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def _build_request(body: ChatRequest | None, force_json: bool = False) -> OutboundRequest:
    body = body or ChatRequest()
    if not body.user_text:
        raise BadRequestError("No prompt provided")
    system_text = body.system_prompt or settings.default_system_prompt
    return OutboundRequest.from_prompt(body.user_text, system_text, force_json=force_json)


async def _execute(gateway: GeminiGateway, request: OutboundRequest) -> dict:
    outcome: Outcome = await gateway.execute(request)
    if not outcome.ok:
        logger.error("Gemini error: %s %s", outcome.status_code, outcome.kind.value)
        raise UpstreamError(status=outcome.status_code, body=outcome.raw_body, kind=outcome.kind.value)

    raw = parse_body(outcome.raw_body)
    finish_reason = extract_finish_reason(raw)
    if finish_reason and finish_reason != "STOP":
        logger.warning("Gemini finished with reason %s", finish_reason)
    return raw


@router.post("/chat", response_model=ChatReply)
async def chat(
    body: ChatRequest | None = Body(default=None),
    gateway: GeminiGateway = Depends(get_gateway),
):
    """Send the prompt to Gemini and return the flattened reply."""
    raw = await _execute(gateway, _build_request(body))
    return ChatReply(reply=extract_reply(raw), raw=raw)


@router.post("/extract", response_model=ExtractReply)
async def extract(
    body: ChatRequest | None = Body(default=None),
    gateway: GeminiGateway = Depends(get_gateway),
):
    """Ask Gemini for JSON output and return the parsed object.

    The system prompt should describe the expected JSON shape.
    """
    raw = await _execute(gateway, _build_request(body, force_json=True))
    reply = extract_reply(raw)
    try:
        data = extract_json(reply)
    except ResponseParseError as e:
        logger.warning("Structured reply could not be parsed: %s", e)
        raise UpstreamError("Unparseable model output", reply=reply) from e
    return ExtractReply(data=data, reply=reply, raw=raw)

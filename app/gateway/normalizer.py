"""Response Normalizer — turns a Gemini success body into plain values.

  - extract_reply: joins candidates[0].content.parts[*].text, best-effort
  - extract_json: pulls the JSON object embedded in a reply (structured mode)
  - extract_finish_reason: reports SAFETY / MAX_TOKENS style stops
"""

from __future__ import annotations

import json
import logging
from typing import Any

from app.gateway.errors import ResponseParseError

logger = logging.getLogger(__name__)

PART_SEPARATOR = "\n"


def parse_body(body: str | bytes | dict | None) -> dict:
    """Decode a raw body into a dict; anything unusable becomes ``{}``."""
    if isinstance(body, dict):
        return body
    if not body:
        return {}
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Success body is not valid JSON (%d bytes)", len(body))
        return {}
    return data if isinstance(data, dict) else {}


def _first_candidate(data: dict) -> dict:
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return {}
    first = candidates[0]
    return first if isinstance(first, dict) else {}


def extract_reply(body: str | bytes | dict | None) -> str:
    """Return the reply text of the first candidate, or ``""``.

    Never raises: a malformed body must not turn a success into a failure.
    """
    content = _first_candidate(parse_body(body)).get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""

    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    return PART_SEPARATOR.join(texts).strip()


def extract_finish_reason(body: str | bytes | dict | None) -> str:
    reason = _first_candidate(parse_body(body)).get("finishReason")
    return reason if isinstance(reason, str) else ""


def extract_json(text: str) -> Any:
    """Parse the JSON object spanning the first ``{`` to the last ``}``.

    Raises:
        ResponseParseError: no object found, or it does not parse.
    """
    start = text.find("{") if text else -1
    end = text.rfind("}") if text else -1
    if start == -1 or end <= start:
        raise ResponseParseError("No JSON object found in model output", text=text or "")

    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Model output is not valid JSON: {e.msg}", text=text) from e

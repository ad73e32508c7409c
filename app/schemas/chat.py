"""Pydantic request/response models for the chat endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Inbound prompt. ``userPrompt`` wins over ``prompt`` when both are sent."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: str | None = None
    user_prompt: str | None = Field(default=None, alias="userPrompt")
    system_prompt: str | None = Field(default=None, alias="systemPrompt")

    @property
    def user_text(self) -> str:
        return self.user_prompt or self.prompt or ""


class ChatReply(BaseModel):
    reply: str
    raw: dict[str, Any]


class ExtractReply(BaseModel):
    data: Any
    reply: str
    raw: dict[str, Any]

"""Credential pool — the ordered, read-only set of Gemini API keys.

Loaded once at startup from configuration and shared by every dispatch.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from app.gateway.errors import ConfigurationError
from app.gateway.types import Credential

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[,;\s]+")


@dataclass(frozen=True)
class CredentialPool:
    """Immutable, ordered sequence of credentials.

    Usage:
        pool = CredentialPool.load("key-a, key-b")
        for credential in pool:
            ...
    """

    credentials: tuple[Credential, ...] = ()

    @classmethod
    def load(cls, raw: str | Iterable[str] | None) -> CredentialPool:
        """Split, trim and deduplicate raw key material.

        Accepts a separated string (commas, semicolons or whitespace) or an
        iterable of strings. Order of first occurrence is preserved.

        Raises:
            ConfigurationError: if no key survives.
        """
        if raw is None:
            pieces: list[str] = []
        elif isinstance(raw, str):
            pieces = _SEPARATORS.split(raw)
        else:
            pieces = [p for item in raw for p in _SEPARATORS.split(item or "")]

        seen: set[str] = set()
        secrets: list[str] = []
        for piece in pieces:
            secret = piece.strip()
            if secret and secret not in seen:
                seen.add(secret)
                secrets.append(secret)

        if not secrets:
            raise ConfigurationError("No Gemini API keys configured (set GEMINI_API_KEYS)")

        pool = cls(credentials=tuple(Credential(secret=s, index=i) for i, s in enumerate(secrets)))
        logger.info("Loaded credential pool with %d key(s)", len(pool))
        return pool

    def __len__(self) -> int:
        return len(self.credentials)

    def __iter__(self) -> Iterator[Credential]:
        return iter(self.credentials)

    def __getitem__(self, index: int) -> Credential:
        return self.credentials[index]

    def __bool__(self) -> bool:
        return bool(self.credentials)

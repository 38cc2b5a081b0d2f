"""Runtime configuration resolved from the environment.

``load_settings()`` first loads a ``.env`` from the current working directory
with ``python-dotenv`` (without overriding variables already set), then reads:

- ``OPENAI_API_KEY``: credential for the hosted risk model. When absent the
  deterministic local scorer is used; this is not an error.
- ``CASH_AUDIT_MODEL``: Responses API model name.
- ``CASH_AUDIT_MAX_BATCH``: how many leading transactions one CAAT run sends.
- ``CASH_AUDIT_SYNC_DELAY``: artificial delay (seconds) of the simulated sync.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_MODEL: str = "gpt-4.1-mini"
DEFAULT_MAX_BATCH: int = 15
DEFAULT_SYNC_DELAY_SEC: float = 2.0


@dataclass(frozen=True, slots=True)
class Settings:
    openai_api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_batch: int = DEFAULT_MAX_BATCH
    sync_delay_sec: float = DEFAULT_SYNC_DELAY_SEC

    @property
    def has_credential(self) -> bool:
        return bool(self.openai_api_key)


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int(raw) if raw else None
    except ValueError:
        value = None
    return value if value is not None and value > 0 else default


def _non_negative_float(raw: str | None, default: float) -> float:
    try:
        value = float(raw) if raw else None
    except ValueError:
        value = None
    return value if value is not None and value >= 0 else default


def load_settings(*, dotenv_path: Path | None = None) -> Settings:
    """Resolve :class:`Settings` from ``.env`` and the process environment."""

    load_dotenv(dotenv_path=dotenv_path or (Path.cwd() / ".env"), override=False)

    api_key = (os.getenv("OPENAI_API_KEY") or "").strip() or None
    model = (os.getenv("CASH_AUDIT_MODEL") or "").strip() or DEFAULT_MODEL
    return Settings(
        openai_api_key=api_key,
        model=model,
        max_batch=_positive_int(os.getenv("CASH_AUDIT_MAX_BATCH"), DEFAULT_MAX_BATCH),
        sync_delay_sec=_non_negative_float(
            os.getenv("CASH_AUDIT_SYNC_DELAY"), DEFAULT_SYNC_DELAY_SEC
        ),
    )


__all__ = ["DEFAULT_MAX_BATCH", "DEFAULT_MODEL", "Settings", "load_settings"]

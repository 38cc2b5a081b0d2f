"""Pytest configuration for test isolation.

``load_settings()`` reads ``.env`` from the current working directory and the
process environment. A developer's real ``OPENAI_API_KEY`` (or a stray
``.env`` in the repo root) would otherwise switch tests onto the hosted
scorer, so every test runs from its own temporary directory with the
package's environment variables cleared.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `cash_audit` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

_ENV_VARS = (
    "OPENAI_API_KEY",
    "CASH_AUDIT_MODEL",
    "CASH_AUDIT_MAX_BATCH",
    "CASH_AUDIT_SYNC_DELAY",
    "CASH_AUDIT_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    logger = logging.getLogger("cash_audit")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate

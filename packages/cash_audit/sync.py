"""Simulated accounting-system sync.

There is no network call: after a fixed artificial delay one synthetic DEBIT
transaction is produced, standing in for a fetch from the client's accounting
software.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from .models import Transaction, TransactionType
from .settings import DEFAULT_SYNC_DELAY_SEC

_logger = logging.getLogger(__name__)


def simulate_system_sync(
    existing_count: int,
    *,
    delay: float = DEFAULT_SYNC_DELAY_SEC,
    sleep: Callable[[float], None] = time.sleep,
    now: datetime | None = None,
) -> Transaction:
    """Return the single transaction a sync "fetches" after ``delay`` seconds."""

    if delay > 0:
        sleep(delay)
    stamp_ms = int((now or datetime.now()).timestamp() * 1000)
    tx = Transaction(
        id=f"TX{existing_count + 1:03d}",
        date="2023-10-10",
        description="Imported Transaction from Accurate",
        reference_no=f"API-{stamp_ms}",
        amount=Decimal(5_000_000),
        type=TransactionType.DEBIT,
        account_code="4-2000",
        counterparty="Auto Imported",
    )
    _logger.info("sync:done id=%s reference=%s", tx.id, tx.reference_no)
    return tx


__all__ = ["simulate_system_sync"]

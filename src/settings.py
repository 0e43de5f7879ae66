"""Runtime settings read from environment variables.

``CHECKOUT_SHIPPING_FEE``
    Flat fee charged when at least one item ships (default ``30``).
``CHECKOUT_LOG_DIR``
    Directory for the rotating JSON log file (default ``logs``).
``CHECKOUT_LOG_LEVEL``
    Root log level name, e.g. ``DEBUG`` (default ``INFO``).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

DEFAULT_SHIPPING_FEE = Decimal("30")


@dataclass(frozen=True)
class Settings:
    shipping_fee: Decimal = DEFAULT_SHIPPING_FEE
    log_dir: str = "logs"
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``).

        Raises:
            ValueError: If a variable is set to a value that cannot be used.
        """
        env = os.environ if environ is None else environ

        raw_fee = env.get("CHECKOUT_SHIPPING_FEE", str(DEFAULT_SHIPPING_FEE))
        try:
            fee = Decimal(raw_fee.strip())
        except InvalidOperation:
            raise ValueError(f"CHECKOUT_SHIPPING_FEE must be a number, got {raw_fee!r}") from None
        if not fee.is_finite() or fee < 0:
            raise ValueError(f"CHECKOUT_SHIPPING_FEE must be a non-negative amount, got {raw_fee!r}")

        raw_level = env.get("CHECKOUT_LOG_LEVEL", "INFO").strip().upper()
        level = logging.getLevelName(raw_level)
        if not isinstance(level, int):
            raise ValueError(f"CHECKOUT_LOG_LEVEL is not a known level: {raw_level!r}")

        return cls(
            shipping_fee=fee,
            log_dir=env.get("CHECKOUT_LOG_DIR", "logs"),
            log_level=level,
        )

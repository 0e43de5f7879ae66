"""
Shipping notice generation for the checkout flow.

After a checkout passes validation, every physical item in the cart is
handed to :class:`ShippingService`.  The service groups the items by
name, sums their weight and prints a shipment notice.  In a real system
this is where a carrier API would be called to book a pickup; here the
notice on the output stream is the only side effect.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, TextIO

from metrics import SHIPMENTS_TOTAL
from products import ShippableUnit

logger = logging.getLogger(__name__)

NOTICE_HEADER = "** Shipment notice **"


@dataclass
class ShipmentNotice:
    """Aggregated view of the items in one shipment.

    ``counts`` keeps item names in the order they were first seen.
    """
    counts: Dict[str, int] = field(default_factory=dict)
    total_weight: float = 0.0  # grams

    @property
    def total_weight_kg(self) -> float:
        return self.total_weight / 1000.0

    def render(self) -> str:
        lines = [NOTICE_HEADER]
        for name, count in self.counts.items():
            lines.append(f"{count}x {name}")
        lines.append(f"Total package weight {self.total_weight_kg:.1f}kg")
        return "\n".join(lines)


class ShippingService:
    """Build and emit shipment notices.

    Args:
        stream: Where notices are written.  Defaults to ``sys.stdout``
            at the time of each call, so redirected output is honoured.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def build_notice(self, units: Iterable[ShippableUnit]) -> ShipmentNotice:
        notice = ShipmentNotice()
        for unit in units:
            notice.total_weight += unit.weight
            notice.counts[unit.name] = notice.counts.get(unit.name, 0) + 1
        return notice

    def ship(self, units: List[ShippableUnit]) -> ShipmentNotice:
        """Print the shipment notice for ``units`` and return it."""
        notice = self.build_notice(units)
        print(notice.render(), file=self.stream)
        SHIPMENTS_TOTAL.inc()
        logger.info(
            "Shipment notice issued",
            extra={
                "extra": {
                    "items": sum(notice.counts.values()),
                    "distinct_items": len(notice.counts),
                    "total_weight_grams": notice.total_weight,
                }
            },
        )
        return notice

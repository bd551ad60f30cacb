"""
Cart Aggregator

Client-side cart: one line per menu item with a quantity and free-text
notes. The cart stores no prices; `total()` asks the pricing resolver
about each referenced item every time it is called, so an offer that
starts or ends while the customer browses is reflected immediately.

Invariants:
    - at most one line per menu item id
    - every line has quantity >= 1; a line whose quantity would drop to
      zero or below is removed
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping

from dinein.schemas import MenuItem
from dinein.services.pricing import item_effective_price

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    menu_item: MenuItem
    quantity: int = 1
    notes: str = ""

    @property
    def item_id(self) -> str:
        return self.menu_item.id

    @property
    def unit_price(self) -> Decimal:
        return item_effective_price(self.menu_item)

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class Cart:
    """In-memory cart keyed by menu item id, in the order items were added."""

    def __init__(self):
        self._lines: dict[str, CartLine] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._lines

    def __iter__(self):
        return iter(list(self._lines.values()))

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def item_count(self) -> int:
        """Total number of units, as shown on the cart badge."""
        return sum(line.quantity for line in self._lines.values())

    def get(self, item_id: str):
        return self._lines.get(item_id)

    def add(self, item: MenuItem) -> CartLine:
        """Add one unit of `item`; an existing line is incremented."""
        line = self._lines.get(item.id)
        if line is not None:
            line.quantity += 1
            # Keep the freshest view of the item for pricing
            line.menu_item = item
        else:
            line = CartLine(menu_item=item)
            self._lines[item.id] = line
        logger.debug(f"Cart add {item.id} -> qty {line.quantity}")
        return line

    def adjust_quantity(self, item_id: str, delta: int) -> None:
        """Change a line's quantity by `delta`; drop the line at zero or below."""
        line = self._lines.get(item_id)
        if line is None:
            return
        new_quantity = line.quantity + delta
        if new_quantity <= 0:
            del self._lines[item_id]
        else:
            line.quantity = new_quantity

    def remove(self, item_id: str) -> None:
        self._lines.pop(item_id, None)

    def set_notes(self, item_id: str, notes: str) -> None:
        line = self._lines.get(item_id)
        if line is not None:
            line.notes = notes or ""

    def rebind(self, items: Mapping[str, MenuItem] | Iterable[MenuItem]) -> None:
        """Point lines at freshly fetched menu items so totals use current offers."""
        if not isinstance(items, Mapping):
            items = {item.id: item for item in items}
        for item_id, line in self._lines.items():
            fresh = items.get(item_id)
            if fresh is not None:
                line.menu_item = fresh

    def total(self) -> Decimal:
        return sum((line.subtotal for line in self._lines.values()), Decimal("0"))

    def clear(self) -> None:
        self._lines.clear()

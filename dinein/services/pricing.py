"""
Pricing Resolver

Works out what a menu item actually costs right now and how big its
offer discount is.

An offer counts only when `has_offer` is set and `offer_price` is a
positive amount. The discount percentage is shown only for a real
discount (offer below a non-zero base price); degenerate offers resolve
to "no discount" instead of raising.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from dinein.schemas import MenuItem

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 0.1 from turning into long binary fractions
    return Decimal(str(value))


def offer_active(has_offer: bool, offer_price: Optional[Number]) -> bool:
    offer = _to_decimal(offer_price)
    return bool(has_offer) and offer is not None and offer > ZERO


def effective_price(price: Number, has_offer: bool, offer_price: Optional[Number]) -> Decimal:
    """
    Price charged for one unit.

    Returns:
        offer_price while an offer is active, otherwise the base price
    """
    if offer_active(has_offer, offer_price):
        return _to_decimal(offer_price)
    return _to_decimal(price)


def discount_percent(price: Number, has_offer: bool, offer_price: Optional[Number]) -> Optional[int]:
    """
    Whole-number discount percentage, rounded half up.

    Returns:
        The percentage for a real discount, or None when there is no
        active offer, the base price is zero, or the offer is not below
        the base price.
    """
    if not offer_active(has_offer, offer_price):
        return None

    base = _to_decimal(price)
    offer = _to_decimal(offer_price)
    if base is None or base <= ZERO or offer >= base:
        return None

    percent = HUNDRED * (1 - offer / base)
    return int(percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def item_effective_price(item: MenuItem) -> Decimal:
    return effective_price(item.price, item.has_offer, item.offer_price)


def item_discount_percent(item: MenuItem) -> Optional[int]:
    return discount_percent(item.price, item.has_offer, item.offer_price)

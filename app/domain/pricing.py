"""
Order total computation.

All amounts are integers in minor currency units (cents). Unit prices are
copied onto each line so a placed order never follows later price edits.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from app.constants.tiers import MAX_ORDER_ITEMS
from app.domain.result import ErrorKind, Ok, Result, fail


@dataclass(frozen=True)
class LineItemInput:
    product_id: str
    unit_price: int
    quantity: int
    photo_id: str | None = None


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    photo_id: str | None
    quantity: int
    unit_price: int
    total_price: int


@dataclass(frozen=True)
class OrderTotals:
    lines: tuple[PricedLine, ...]
    subtotal: int
    discount: int
    tax: int
    total: int


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def price_order(lines: Sequence[LineItemInput], discount: int = 0, tax: int = 0) -> Result[OrderTotals, object]:
    """
    Price an order: ``total_price = unit_price * quantity`` per line,
    ``subtotal = sum(total_price)`` and ``total = subtotal - discount + tax``.
    """
    if not lines:
        return fail(ErrorKind.EMPTY, "Order must contain at least one item", "items")
    if len(lines) > MAX_ORDER_ITEMS:
        return fail(ErrorKind.TOO_LONG, f"Order cannot contain more than {MAX_ORDER_ITEMS} items", "items")
    if not _is_int(discount) or discount < 0:
        return fail(ErrorKind.INVALID_VALUE, "Discount must be a non-negative integer", "discount")
    if not _is_int(tax) or tax < 0:
        return fail(ErrorKind.INVALID_VALUE, "Tax must be a non-negative integer", "tax")

    priced = []
    for line in lines:
        if not _is_int(line.quantity) or line.quantity <= 0:
            return fail(ErrorKind.INVALID_VALUE, "Quantity must be a positive integer", "quantity")
        if not _is_int(line.unit_price) or line.unit_price < 0:
            return fail(ErrorKind.INVALID_VALUE, "Price must be a non-negative integer", "price")
        priced.append(
            PricedLine(
                product_id=line.product_id,
                photo_id=line.photo_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.unit_price * line.quantity,
            )
        )

    subtotal = sum(line.total_price for line in priced)
    if discount > subtotal:
        return fail(ErrorKind.INVALID_VALUE, "Discount cannot exceed the subtotal", "discount")

    return Ok(
        OrderTotals(
            lines=tuple(priced),
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            total=subtotal - discount + tax,
        )
    )

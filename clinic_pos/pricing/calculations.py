"""
clinic_pos/pricing/calculations.py
----------------------------------
Per-line financial calculation for the POS.

Given a unit price, quantity, cashier-entered discount and cost price,
derive subtotal, discount amount, line total, cost total and profit.

Every intermediate value is rounded HALF_UP to 2 decimal places by the
same helper, in a fixed order:

    1. unit_price, cost_price          → round2
    2. discount value (any variant)    → round2
    3. subtotal    = round2(unit_price × qty)
    4. discount    = 0 | round2(subtotal × pct / 100) | nominal
    5. discount    = min(discount, subtotal)
    6. line_total  = round2(subtotal − discount)
    7. cost_total  = round2(cost_price × qty)
    8. profit      = round2(line_total − cost_total)   ← may be negative

Rounding once at the end gives different cents on half-cent edges, so
the order above must not be collapsed.

No DB access, no logging, no shared state. Range validation lives in
clinic_pos.pricing.validators and runs before this module is called.
"""
from __future__ import annotations
import enum
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, localcontext


Q       = Decimal('0.01')   # quantize target
ZERO    = Decimal('0.00')
HUNDRED = Decimal('100')


def to_decimal(value) -> Decimal:
    """
    Exact Decimal for int / str / Decimal input.
    Floats go through str() so 0.1 becomes Decimal('0.1'), not its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round2(amount) -> Decimal:
    """Financial rounding used everywhere: HALF_UP, 2dp."""
    value = to_decimal(amount)
    with localcontext() as ctx:
        # quantize needs every integer digit plus the two cents to fit
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(Q, rounding=ROUND_HALF_UP)


def _digits(value: Decimal) -> int:
    return len(value.as_tuple().digits)


class DiscountType(enum.Enum):
    NONE    = "NONE"
    PERCENT = "PERCENT"
    NOMINAL = "NOMINAL"


@dataclass(frozen=True)
class DiscountSpec:
    """
    A manual, per-line discount typed in by the cashier.

    PERCENT  value is 0..100 (a percentage, not money)
    NOMINAL  value is an amount off the whole line
    NONE     value is ignored
    """
    type:  DiscountType = DiscountType.NONE
    value: Decimal      = ZERO

    @classmethod
    def none(cls) -> DiscountSpec:
        return cls(DiscountType.NONE, ZERO)

    @classmethod
    def percent(cls, value) -> DiscountSpec:
        return cls(DiscountType.PERCENT, to_decimal(value))

    @classmethod
    def nominal(cls, value) -> DiscountSpec:
        return cls(DiscountType.NOMINAL, to_decimal(value))

    @classmethod
    def from_fields(cls, discount_type, discount_value=None) -> DiscountSpec:
        """
        Build from the flat (type, value) pair stored on a line or posted by the POS.
        A missing / empty type means no discount.
        """
        if discount_type is None or discount_type == '':
            return cls.none()
        dtype = discount_type if isinstance(discount_type, DiscountType) \
            else DiscountType(str(discount_type).upper())
        value = to_decimal(discount_value) if discount_value not in (None, '') else ZERO
        return cls(dtype, value)


@dataclass(frozen=True)
class LineBreakdown:
    """Result of one line calculation. Persisted verbatim as the line snapshot."""
    subtotal:      Decimal
    line_discount: Decimal
    line_total:    Decimal
    cost_total:    Decimal
    profit:        Decimal

    def as_dict(self) -> dict:
        """Money as strings so JSON never sees a float."""
        return {
            'subtotal':      str(self.subtotal),
            'line_discount': str(self.line_discount),
            'line_total':    str(self.line_total),
            'cost_total':    str(self.cost_total),
            'profit':        str(self.profit),
        }


def calculate(unit_price, qty, discount: DiscountSpec, cost_price) -> LineBreakdown:
    """
    Compute the financial breakdown of one line.

    Args:
        unit_price: selling price per unit (rounded to 2dp before use)
        qty:        units sold; fractional quantities are multiplied as-is
        discount:   DiscountSpec entered for this line
        cost_price: cost per unit (rounded to 2dp before use)

    Returns:
        LineBreakdown with every field at exactly 2dp.
    """
    q  = to_decimal(qty)
    up = round2(unit_price)
    cp = round2(cost_price)
    # The percentage itself is rounded too; stored lines depend on it.
    dv = round2(discount.value)

    with localcontext() as ctx:
        # Products stay exact whatever the magnitude of the inputs
        ctx.prec = max(ctx.prec, _digits(up) + _digits(cp) + _digits(dv) + _digits(q) + 4)

        subtotal = round2(up * q)

        if discount.type is DiscountType.PERCENT:
            line_discount = round2(subtotal * dv / HUNDRED)
        elif discount.type is DiscountType.NOMINAL:
            line_discount = dv
        else:
            line_discount = ZERO

        # A discount alone can never push the line below zero
        if line_discount > subtotal:
            line_discount = subtotal

        line_total = round2(subtotal - line_discount)
        cost_total = round2(cp * q)
        profit     = round2(line_total - cost_total)

    return LineBreakdown(
        subtotal=subtotal,
        line_discount=line_discount,
        line_total=line_total,
        cost_total=cost_total,
        profit=profit,
    )


def calc_line_totals(unit_price, qty, discount_type, discount_value, cost_price) -> LineBreakdown:
    """Flat-argument form of calculate() for callers holding stored (type, value) columns."""
    return calculate(unit_price, qty, DiscountSpec.from_fields(discount_type, discount_value), cost_price)

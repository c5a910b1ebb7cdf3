"""
clinic_pos/billing/snapshot.py
------------------------------
Persist a priced line exactly as the calculator produced it.

MUST be called inside an open SQLAlchemy transaction; the caller commits.
"""
from clinic_pos.billing.models import TransactionLine
from clinic_pos.pricing.calculations import DiscountType, round2


def record_line(db_session, quote) -> TransactionLine:
    """
    Add a TransactionLine for `quote` (a pricing.lookup.LineQuote) and flush.

    Breakdown values are copied as-is; nothing is recomputed here.

    Args:
        db_session: the active SQLAlchemy session (db.session)
        quote:      LineQuote returned by pricing.lookup.quote_line

    Returns:
        the flushed TransactionLine (id assigned, not yet committed)
    """
    discount = quote.discount
    breakdown = quote.breakdown

    line = TransactionLine(
        item_type      = quote.item_type,
        product_id     = quote.product_id,
        treatment_id   = quote.treatment_id,
        category_id    = quote.category_id,
        qty            = quote.qty,
        unit_price     = round2(quote.unit_price),
        discount_type  = None if discount.type is DiscountType.NONE else discount.type.value,
        discount_value = round2(discount.value),
        cost_price     = round2(quote.cost_price),
        line_subtotal  = breakdown.subtotal,
        line_discount  = breakdown.line_discount,
        line_total     = breakdown.line_total,
        cost_total     = breakdown.cost_total,
        profit         = breakdown.profit,
    )
    db_session.add(line)
    db_session.flush()
    return line

"""
clinic_pos/pricing/validators.py
--------------------------------
Pure-Python validation for one POS line before it reaches the calculator.
Returns a dict of field -> error_message.
An empty dict means all fields are valid.

The calculator trusts its inputs; everything it must not see
(negative or oversized amounts, percent above 100, unknown discount
types, quantities finer than the stored 3 decimal places) is rejected here.
"""
from decimal import Decimal, InvalidOperation

from clinic_pos.pricing.calculations import DiscountSpec, DiscountType, LineBreakdown


ITEM_TYPES     = ('PRODUCT', 'TREATMENT')
DISCOUNT_TYPES = tuple(t.value for t in DiscountType)
MAX_PERCENT    = Decimal('100')
MAX_AMOUNT     = Decimal(10) ** 10   # Numeric(12, 2) columns
MAX_QTY        = Decimal(10) ** 9    # Numeric(12, 3) column
QTY_PLACES     = 3


def _raw(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    return str(value).strip()


def _parse_decimal(raw: str):
    """Decimal for a finite numeric string, else None."""
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def validate_amount(raw, field: str) -> dict:
    """A money amount typed in directly (price / cost): non-negative number."""
    errors = {}
    raw = '' if raw is None else str(raw).strip()
    label = field.replace('_', ' ').capitalize()
    if not raw:
        errors[field] = f'{label} is required.'
    else:
        value = _parse_decimal(raw)
        if value is None:
            errors[field] = f'{label} must be a valid number.'
        elif value < 0:
            errors[field] = f'{label} cannot be negative.'
        elif value >= MAX_AMOUNT:
            errors[field] = f'{label} is too large.'
    return errors


def validate_line_input(data: dict) -> dict:
    """
    Validate raw line input (JSON body or form) for a quote / recorded line.

    Expected keys:
        item_type       PRODUCT | TREATMENT
        product_id      required for PRODUCT
        treatment_id    required for TREATMENT
        category_code   optional, PRODUCT only
        qty             positive number
        discount_type   optional: NONE | PERCENT | NOMINAL
        discount_value  optional, non-negative number

    Returns:
        dict of {field_name: error_message} — empty if all valid.
    """
    errors = {}

    # ── item_type / ids ───────────────────────────────────────────
    item_type = _raw(data, 'item_type').upper()
    if not item_type:
        errors['item_type'] = 'Item type is required.'
    elif item_type not in ITEM_TYPES:
        errors['item_type'] = 'Item type must be PRODUCT or TREATMENT.'
    else:
        id_field = 'product_id' if item_type == 'PRODUCT' else 'treatment_id'
        id_raw = _raw(data, id_field)
        if not id_raw:
            errors[id_field] = f'{item_type.title()} is required.'
        else:
            try:
                int(id_raw)
            except ValueError:
                errors[id_field] = f'{item_type.title()} id must be a whole number.'

    # ── qty ───────────────────────────────────────────────────────
    qty_raw = _raw(data, 'qty')
    if not qty_raw:
        errors['qty'] = 'Quantity is required.'
    else:
        qty = _parse_decimal(qty_raw)
        if qty is None:
            errors['qty'] = 'Quantity must be a valid number.'
        elif qty <= 0:
            errors['qty'] = 'Quantity must be positive.'
        elif qty >= MAX_QTY:
            errors['qty'] = 'Quantity is too large.'
        elif qty.as_tuple().exponent < -QTY_PLACES:
            errors['qty'] = f'Quantity allows at most {QTY_PLACES} decimal places.'

    # ── discount ──────────────────────────────────────────────────
    dtype = _raw(data, 'discount_type').upper() or 'NONE'
    if dtype not in DISCOUNT_TYPES:
        errors['discount_type'] = 'Discount type must be NONE, PERCENT or NOMINAL.'

    dv_raw = _raw(data, 'discount_value')
    if dv_raw:
        dv = _parse_decimal(dv_raw)
        if dv is None:
            errors['discount_value'] = 'Discount must be a valid number.'
        elif dv < 0:
            errors['discount_value'] = 'Discount cannot be negative.'
        elif dtype == 'PERCENT' and dv > MAX_PERCENT:
            errors['discount_value'] = 'Percent discount must be between 0 and 100.'
        elif dv >= MAX_AMOUNT:
            errors['discount_value'] = 'Discount is too large.'
    elif dtype in ('PERCENT', 'NOMINAL'):
        errors['discount_value'] = 'Discount value is required.'

    return errors


def parse_line_input(data: dict) -> dict:
    """
    Convert validated raw input to correct Python types.
    Call only after validate_line_input returns no errors.
    """
    item_type = _raw(data, 'item_type').upper()
    product_id = _raw(data, 'product_id')
    treatment_id = _raw(data, 'treatment_id')
    return {
        'item_type':     item_type,
        'product_id':    int(product_id) if item_type == 'PRODUCT' else None,
        'treatment_id':  int(treatment_id) if item_type == 'TREATMENT' else None,
        'category_code': _raw(data, 'category_code').upper() or None,
        'qty':           Decimal(_raw(data, 'qty')),
        'discount':      DiscountSpec.from_fields(_raw(data, 'discount_type') or None,
                                                  _raw(data, 'discount_value') or None),
    }


def validate_breakdown(breakdown: LineBreakdown) -> dict:
    """
    Sanity rules applied before a line is recorded.

    The calculator clamps a discount to the subtotal; a line that ends up
    free is still refused at the till.
    """
    errors = {}
    if breakdown.line_discount > 0 and breakdown.line_discount >= breakdown.subtotal:
        errors['discount_value'] = 'Discount must be less than the line subtotal.'
    if breakdown.line_total <= 0:
        errors['line_total'] = 'Line total must be greater than zero.'
    if breakdown.subtotal >= MAX_AMOUNT or breakdown.cost_total >= MAX_AMOUNT:
        errors['qty'] = 'Line amount is too large to record.'
    return errors

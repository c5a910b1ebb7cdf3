from flask import request, jsonify, current_app, abort

from clinic_pos import db
from clinic_pos.pricing import pricing
from clinic_pos.pricing.lookup import (
    PricingError, quote_line, get_category_by_code, get_product_unit_price,
)
from clinic_pos.pricing.models import Product
from clinic_pos.pricing.validators import validate_line_input, parse_line_input


def request_data() -> dict:
    """JSON body if the POS sent one, otherwise form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


# ── QUOTE ─────────────────────────────────────────────────────────

@pricing.route('/quote', methods=['POST'])
def quote():
    """
    Price one line without recording it.
    Body: item_type, product_id | treatment_id, category_code, qty,
          discount_type, discount_value
    """
    data = request_data()
    errors = validate_line_input(data)
    if errors:
        return jsonify(errors=errors), 400

    try:
        result = quote_line(parse_line_input(data))
    except PricingError as exc:
        current_app.logger.warning(f"Quote rejected: {exc}")
        return jsonify(error=str(exc)), 404

    return jsonify(result.as_dict())


# ── PRODUCT PRICE ─────────────────────────────────────────────────

@pricing.route('/products/<int:product_id>/price')
def product_price(product_id):
    """Unit and cost price of a product for ?category=CODE (default category if omitted)."""
    product = db.session.get(Product, product_id)
    if product is None:
        abort(404)

    code = request.args.get('category', '').strip().upper() or current_app.config['DEFAULT_CATEGORY_CODE']
    try:
        category = get_category_by_code(code)
        unit_price = get_product_unit_price(product.id, category.id)
    except PricingError as exc:
        current_app.logger.warning(f"Price lookup failed: {exc}")
        return jsonify(error=str(exc)), 404

    return jsonify(
        product_id=product.id,
        name=product.name,
        category_code=category.code,
        unit_price=str(unit_price),
        cost_price=str(product.cost_price),
        is_active=product.is_active,
    )

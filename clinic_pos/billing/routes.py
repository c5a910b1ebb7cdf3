from flask import jsonify, abort, current_app
from sqlalchemy.exc import IntegrityError

from clinic_pos import db
from clinic_pos.billing import billing
from clinic_pos.billing.models import TransactionLine
from clinic_pos.billing.snapshot import record_line
from clinic_pos.pricing.lookup import PricingError, quote_line
from clinic_pos.pricing.routes import request_data
from clinic_pos.pricing.validators import (
    validate_line_input, parse_line_input, validate_breakdown,
)


# ── RECORD LINE ───────────────────────────────────────────────────

@billing.route('/lines', methods=['POST'])
def record():
    """
    Price a line server-side and store its snapshot:
      1. Validate raw input
      2. Resolve prices + calculate
      3. Refuse free / fully-discounted lines
      4. Persist TransactionLine
      5. Commit
    """
    data = request_data()
    errors = validate_line_input(data)
    if errors:
        return jsonify(errors=errors), 400

    try:
        quote = quote_line(parse_line_input(data))

        errors = validate_breakdown(quote.breakdown)
        if errors:
            return jsonify(errors=errors), 400

        line = record_line(db.session, quote)
        db.session.commit()

    except PricingError as exc:
        db.session.rollback()
        current_app.logger.warning(f"Line rejected: {exc}")
        return jsonify(error=str(exc)), 404

    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.error(f"Line rollback (IntegrityError): {exc}")
        return jsonify(error='A database error occurred. Please try again.'), 500

    current_app.logger.info(
        f"Line recorded: {line.id} {line.item_type} | Total: {line.line_total} | Profit: {line.profit}"
    )
    return jsonify(line.as_dict()), 201


# ── READ SNAPSHOT ─────────────────────────────────────────────────

@billing.route('/lines/<int:line_id>')
def show(line_id):
    """Return the stored snapshot as recorded."""
    line = db.session.get(TransactionLine, line_id)
    if line is None:
        abort(404)
    return jsonify(line.as_dict())

"""
clinic_pos/pricing/lookup.py
----------------------------
Server-side price resolution.

Prices never come from the client: the POS posts ids, quantity and the
cashier's discount, and this module reads unit / cost prices from the DB
before handing them to the calculator.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from flask import current_app

from clinic_pos import db
from clinic_pos.pricing.calculations import DiscountSpec, LineBreakdown, calculate, to_decimal
from clinic_pos.pricing.models import (
    CustomerCategory, Product, ProductPrice, Treatment, Settings,
)


class PricingError(ValueError):
    """A price source is missing or not sellable."""


@dataclass(frozen=True)
class LineQuote:
    """Resolved prices for one line plus its computed breakdown."""
    item_type:    str
    product_id:   Optional[int]
    treatment_id: Optional[int]
    category_id:  Optional[int]
    name:         str
    qty:          Decimal
    unit_price:   Decimal
    cost_price:   Decimal
    discount:     DiscountSpec
    breakdown:    LineBreakdown

    def as_dict(self) -> dict:
        data = {
            'item_type':      self.item_type,
            'product_id':     self.product_id,
            'treatment_id':   self.treatment_id,
            'category_id':    self.category_id,
            'name':           self.name,
            'qty':            str(self.qty),
            'unit_price':     str(self.unit_price),
            'cost_price':     str(self.cost_price),
            'discount_type':  self.discount.type.value,
            'discount_value': str(self.discount.value),
        }
        data.update(self.breakdown.as_dict())
        return data


# ── Lookups ───────────────────────────────────────────────────────

def get_category_by_code(code: str) -> CustomerCategory:
    category = CustomerCategory.query.filter_by(code=code).first()
    if category is None:
        raise PricingError(f'Customer category "{code}" not found.')
    return category


def get_product_unit_price(product_id: int, category_id: int) -> Decimal:
    """Selling price of a product for a customer category."""
    row = ProductPrice.query.filter_by(product_id=product_id, category_id=category_id).first()
    if row is None:
        raise PricingError(f'No price for product {product_id} in category {category_id}.')
    return to_decimal(row.price)


def get_treatment_price(treatment_id: int) -> Decimal:
    """Treatments have one price; the customer category plays no part."""
    treatment = db.session.get(Treatment, treatment_id)
    if treatment is None:
        raise PricingError(f'Treatment {treatment_id} not found.')
    return to_decimal(treatment.sell_price)


def get_default_commission_percent() -> Decimal:
    """
    Store-wide commission percentage (settings row id=1).
    Falls back to DEFAULT_COMMISSION_PERCENT until the row exists.
    """
    settings = db.session.get(Settings, 1)
    if settings is None or settings.commission_default_percent is None:
        return to_decimal(current_app.config['DEFAULT_COMMISSION_PERCENT'])
    return to_decimal(settings.commission_default_percent)


# ── Quote ─────────────────────────────────────────────────────────

def _quote_product(line: dict) -> LineQuote:
    product = db.session.get(Product, line['product_id'])
    if product is None:
        raise PricingError(f'Product {line["product_id"]} not found.')
    if not product.is_active:
        raise PricingError(f'Product "{product.name}" is no longer active.')

    code = line.get('category_code') or current_app.config['DEFAULT_CATEGORY_CODE']
    category = get_category_by_code(code)
    unit_price = get_product_unit_price(product.id, category.id)
    cost_price = to_decimal(product.cost_price)

    return LineQuote(
        item_type='PRODUCT',
        product_id=product.id,
        treatment_id=None,
        category_id=category.id,
        name=product.name,
        qty=line['qty'],
        unit_price=unit_price,
        cost_price=cost_price,
        discount=line['discount'],
        breakdown=calculate(unit_price, line['qty'], line['discount'], cost_price),
    )


def _quote_treatment(line: dict) -> LineQuote:
    treatment = db.session.get(Treatment, line['treatment_id'])
    if treatment is None:
        raise PricingError(f'Treatment {line["treatment_id"]} not found.')
    if not treatment.is_active:
        raise PricingError(f'Treatment "{treatment.name}" is no longer active.')

    unit_price = get_treatment_price(treatment.id)
    cost_price = to_decimal(treatment.cost_price)

    return LineQuote(
        item_type='TREATMENT',
        product_id=None,
        treatment_id=treatment.id,
        category_id=None,
        name=treatment.name,
        qty=line['qty'],
        unit_price=unit_price,
        cost_price=cost_price,
        discount=line['discount'],
        breakdown=calculate(unit_price, line['qty'], line['discount'], cost_price),
    )


def quote_line(line: dict) -> LineQuote:
    """
    Resolve prices for a parsed line (see validators.parse_line_input)
    and run the calculator.

    Raises:
        PricingError — unknown / inactive item, category or missing price row.
    """
    if line['item_type'] == 'PRODUCT':
        return _quote_product(line)
    return _quote_treatment(line)

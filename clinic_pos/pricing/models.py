"""
clinic_pos/pricing/models.py
----------------------------
Price sources read by the pricing lookup.

Products are priced per customer category (ProductPrice row per pair);
treatments carry a single sell_price regardless of category.
"""
from datetime import datetime
from decimal import Decimal
from clinic_pos import db


class CustomerCategory(db.Model):
    """Customer category that selects the product price list (e.g. PASIEN, UMUM)."""
    __tablename__ = 'customer_categories'

    id   = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(30), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    def __repr__(self):
        return f"<CustomerCategory {self.code!r}>"


class Product(db.Model):
    """A retail product sold over the counter."""
    __tablename__ = 'products'

    id         = db.Column(db.Integer, primary_key=True)
    name       = db.Column(db.String(200), nullable=False, index=True)
    sku        = db.Column(db.String(100), unique=True, nullable=False, index=True)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    is_active  = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    prices = db.relationship('ProductPrice', backref='product', lazy='select',
                             cascade='all, delete-orphan')

    __table_args__ = (
        db.CheckConstraint('cost_price >= 0', name='check_product_cost_non_negative'),
    )

    def __repr__(self):
        return f"<Product {self.sku!r} {self.name!r}>"


class ProductPrice(db.Model):
    """Selling price of one product for one customer category."""
    __tablename__ = 'product_prices'

    id          = db.Column(db.Integer, primary_key=True)
    product_id  = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('customer_categories.id'), nullable=False)
    price       = db.Column(db.Numeric(12, 2), nullable=False)

    category = db.relationship('CustomerCategory', lazy='select')

    __table_args__ = (
        db.UniqueConstraint('product_id', 'category_id', name='uq_product_price_category'),
        db.CheckConstraint('price >= 0', name='check_product_price_non_negative'),
    )

    def __repr__(self):
        return f"<ProductPrice product={self.product_id} category={self.category_id} {self.price}>"


class Treatment(db.Model):
    """A clinic treatment performed by a therapist."""
    __tablename__ = 'treatments'

    id         = db.Column(db.Integer, primary_key=True)
    name       = db.Column(db.String(200), nullable=False, index=True)
    sell_price = db.Column(db.Numeric(12, 2), nullable=False)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    is_active  = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('sell_price >= 0', name='check_treatment_price_non_negative'),
        db.CheckConstraint('cost_price >= 0', name='check_treatment_cost_non_negative'),
    )

    def __repr__(self):
        return f"<Treatment {self.name!r} {self.sell_price}>"


class Settings(db.Model):
    """Single-row store settings (id is always 1)."""
    __tablename__ = 'settings'

    id                         = db.Column(db.Integer, primary_key=True)
    commission_default_percent = db.Column(db.Numeric(5, 2), nullable=False, default=Decimal('10'))

    def __repr__(self):
        return f"<Settings commission={self.commission_default_percent}%>"

from datetime import datetime
from sqlalchemy import event
from sqlalchemy.orm import Session, object_session
from clinic_pos import db
from clinic_pos.pricing.calculations import LineBreakdown, to_decimal


class SnapshotImmutableError(Exception):
    """Raised when a flush tries to change a recorded TransactionLine."""


class TransactionLine(db.Model):
    """
    One priced line at the moment of sale.

    Stores the calculator inputs and its breakdown exactly as computed.
    Reports and commission read these columns and never recompute them,
    so the row is write-once: a changed instance is refused at flush time
    and a bulk UPDATE on the table is refused before it executes.
    """
    __tablename__ = 'transaction_lines'

    id             = db.Column(db.Integer, primary_key=True)
    item_type      = db.Column(db.String(10), nullable=False)           # PRODUCT | TREATMENT
    product_id     = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=True)
    treatment_id   = db.Column(db.Integer, db.ForeignKey('treatments.id'), nullable=True)
    category_id    = db.Column(db.Integer, db.ForeignKey('customer_categories.id'), nullable=True)

    # ── Inputs ────────────────────────────────────────────────────
    qty            = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price     = db.Column(db.Numeric(12, 2), nullable=False)
    discount_type  = db.Column(db.String(10), nullable=True)            # None = no discount
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cost_price     = db.Column(db.Numeric(12, 2), nullable=False)

    # ── Breakdown snapshot ────────────────────────────────────────
    line_subtotal  = db.Column(db.Numeric(12, 2), nullable=False)
    line_discount  = db.Column(db.Numeric(12, 2), nullable=False)
    line_total     = db.Column(db.Numeric(12, 2), nullable=False)
    cost_total     = db.Column(db.Numeric(12, 2), nullable=False)
    profit         = db.Column(db.Numeric(12, 2), nullable=False)       # may be negative

    created_at     = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    product   = db.relationship('Product', lazy='select')
    treatment = db.relationship('Treatment', lazy='select')
    category  = db.relationship('CustomerCategory', lazy='select')

    __table_args__ = (
        db.CheckConstraint('line_discount <= line_subtotal', name='check_discount_within_subtotal'),
        db.CheckConstraint('line_total >= 0', name='check_line_total_non_negative'),
    )

    # ── Computed helpers ──────────────────────────────────────────
    @property
    def breakdown(self) -> LineBreakdown:
        """The stored snapshot as a LineBreakdown (read back, not recalculated)."""
        return LineBreakdown(
            subtotal=to_decimal(self.line_subtotal),
            line_discount=to_decimal(self.line_discount),
            line_total=to_decimal(self.line_total),
            cost_total=to_decimal(self.cost_total),
            profit=to_decimal(self.profit),
        )

    @property
    def name(self) -> str:
        item = self.product if self.item_type == 'PRODUCT' else self.treatment
        return item.name if item is not None else 'Unknown'

    def as_dict(self) -> dict:
        data = {
            'id':             self.id,
            'item_type':      self.item_type,
            'product_id':     self.product_id,
            'treatment_id':   self.treatment_id,
            'category_id':    self.category_id,
            'name':           self.name,
            'qty':            str(self.qty),
            'unit_price':     str(self.unit_price),
            'discount_type':  self.discount_type,
            'discount_value': str(self.discount_value),
            'cost_price':     str(self.cost_price),
            'created_at':     self.created_at.isoformat() if self.created_at else None,
        }
        data.update(self.breakdown.as_dict())
        return data

    def __repr__(self):
        return f"<TransactionLine {self.id} {self.item_type} total={self.line_total}>"


@event.listens_for(TransactionLine, 'before_update')
def _refuse_snapshot_update(mapper, connection, target):
    # Fires for every dirty instance; only real column changes count
    if not object_session(target).is_modified(target, include_collections=False):
        return
    raise SnapshotImmutableError(
        f'TransactionLine {target.id} is a recorded snapshot and cannot be modified.'
    )


@event.listens_for(Session, 'do_orm_execute')
def _refuse_bulk_snapshot_update(orm_execute_state):
    # Query.update() and session.execute(update(...)) skip before_update
    if not orm_execute_state.is_update:
        return
    table = getattr(orm_execute_state.statement, 'table', None)
    if getattr(table, 'name', None) == TransactionLine.__tablename__:
        raise SnapshotImmutableError(
            'Recorded TransactionLine snapshots cannot be bulk-updated.'
        )

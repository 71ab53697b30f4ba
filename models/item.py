from . import db
from datetime import datetime


class InventoryItem(db.Model):
    """
    Catalog item. Owned by catalog management; the count engine only reads it.

    minimum_threshold / maximum_threshold are the item-level defaults, the
    lowest-precedence threshold source.
    """
    __tablename__ = 'inventory_items'

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True, index=True)
    name = db.Column(db.String(150), nullable=False)
    sku = db.Column(db.String(50), nullable=True, index=True)
    barcode = db.Column(db.String(64), nullable=True, index=True)
    unit = db.Column(db.String(20), nullable=True)

    minimum_threshold = db.Column(db.Numeric(12, 3), nullable=True)
    maximum_threshold = db.Column(db.Numeric(12, 3), nullable=True)

    unit_cost = db.Column(db.Numeric(12, 2), nullable=True)
    purchase_price = db.Column(db.Numeric(12, 2), nullable=True)

    current_stock = db.Column(db.Numeric(12, 3), default=0)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('current_stock >= 0', name='ck_item_stock_non_negative'),
    )

    def __repr__(self):
        return f'<InventoryItem {self.sku or self.id}: {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'sku': self.sku,
            'barcode': self.barcode,
            'unit': self.unit,
            'minimum_threshold': float(self.minimum_threshold) if self.minimum_threshold is not None else None,
            'maximum_threshold': float(self.maximum_threshold) if self.maximum_threshold is not None else None,
            'unit_cost': float(self.unit_cost) if self.unit_cost is not None else None,
            'purchase_price': float(self.purchase_price) if self.purchase_price is not None else None,
            'current_stock': float(self.current_stock or 0),
        }

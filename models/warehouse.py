from . import db
from datetime import datetime


class Warehouse(db.Model):
    __tablename__ = 'warehouses'

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    items = db.relationship('WarehouseItem', backref='warehouse', lazy='dynamic')

    def __repr__(self):
        return f'<Warehouse {self.id}: {self.name}>'


class WarehouseItem(db.Model):
    """
    Warehouse-scoped stock record. reorder_min / reorder_max are the
    warehouse default thresholds used when no daily override exists.
    """
    __tablename__ = 'warehouse_items'

    id = db.Column(db.Integer, primary_key=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey('warehouses.id'), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey('inventory_items.id'), nullable=False, index=True)

    quantity = db.Column(db.Numeric(12, 3), default=0)
    reorder_min = db.Column(db.Numeric(12, 3), nullable=True)
    reorder_max = db.Column(db.Numeric(12, 3), nullable=True)
    average_cost = db.Column(db.Numeric(12, 2), nullable=True)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    item = db.relationship('InventoryItem')

    __table_args__ = (
        db.UniqueConstraint('warehouse_id', 'item_id', name='uq_warehouse_item'),
    )

    def __repr__(self):
        return f'<WarehouseItem w={self.warehouse_id} item={self.item_id} qty={self.quantity}>'

    @classmethod
    def get_for(cls, warehouse_id, item_id):
        return cls.query.filter_by(warehouse_id=warehouse_id, item_id=item_id).first()

"""
Inventory Count Models - Count sessions and their per-item rows
"""
from . import db
from datetime import datetime, date

STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'


class CountSession(db.Model):
    """
    One pass of physically counting some or all items.

    total_items_count / variance_count / completion_percentage are derived from
    the CountItem rows; they are refreshed while the session is in progress and
    frozen when it completes.
    """
    __tablename__ = 'count_sessions'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)

    team_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey('warehouses.id'), nullable=True, index=True)
    template_id = db.Column(db.Integer, db.ForeignKey('count_templates.id'), nullable=True)

    count_date = db.Column(db.Date, nullable=False, default=date.today, index=True)
    status = db.Column(db.String(20), default=STATUS_IN_PROGRESS, nullable=False, index=True)

    # Voiding only applies to completed sessions
    is_voided = db.Column(db.Boolean, default=False, nullable=False)
    void_reason = db.Column(db.Text, nullable=True)
    voided_at = db.Column(db.DateTime, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    total_items_count = db.Column(db.Integer, default=0)
    variance_count = db.Column(db.Integer, default=0)
    completion_percentage = db.Column(db.Numeric(5, 2), default=0)

    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship('CountItem', backref='session', lazy='dynamic',
                            order_by='CountItem.id')
    warehouse = db.relationship('Warehouse')
    template = db.relationship('CountTemplate')

    __table_args__ = (
        db.CheckConstraint("NOT (status = 'in_progress' AND is_voided)", name='ck_in_progress_not_voided'),
    )

    def __repr__(self):
        return f'<CountSession {self.id}: {self.status}{" (voided)" if self.is_voided else ""}>'

    @property
    def is_in_progress(self):
        return self.status == STATUS_IN_PROGRESS

    @property
    def is_completed(self):
        return self.status == STATUS_COMPLETED

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'team_id': self.team_id,
            'warehouse_id': self.warehouse_id,
            'template_id': self.template_id,
            'count_date': self.count_date.isoformat() if self.count_date else None,
            'status': self.status,
            'is_voided': bool(self.is_voided),
            'void_reason': self.void_reason,
            'notes': self.notes,
            'total_items_count': self.total_items_count or 0,
            'variance_count': self.variance_count or 0,
            'completion_percentage': float(self.completion_percentage or 0),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class CountItem(db.Model):
    """Expected vs. actual quantity for one item within a session. Never deleted."""
    __tablename__ = 'count_items'

    id = db.Column(db.Integer, primary_key=True)
    count_id = db.Column(db.Integer, db.ForeignKey('count_sessions.id'), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey('inventory_items.id'), nullable=False, index=True)

    # Snapshot of current_stock at session start
    in_stock_quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    # Template expected quantity when given, else the in-stock snapshot
    expected_quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    actual_quantity = db.Column(db.Numeric(12, 3), nullable=True)

    template_minimum_quantity = db.Column(db.Numeric(12, 3), nullable=True)
    template_maximum_quantity = db.Column(db.Numeric(12, 3), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    counted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    item = db.relationship('InventoryItem')

    __table_args__ = (
        db.UniqueConstraint('count_id', 'item_id', name='uq_count_item'),
        db.CheckConstraint('actual_quantity IS NULL OR actual_quantity >= 0',
                           name='ck_actual_quantity_non_negative'),
    )

    def __repr__(self):
        return f'<CountItem count={self.count_id} item={self.item_id} actual={self.actual_quantity}>'

    @property
    def is_counted(self):
        return self.actual_quantity is not None

    def to_dict(self):
        return {
            'id': self.id,
            'count_id': self.count_id,
            'item_id': self.item_id,
            'item_name': self.item.name if self.item else None,
            'in_stock_quantity': float(self.in_stock_quantity or 0),
            'expected_quantity': float(self.expected_quantity or 0),
            'actual_quantity': float(self.actual_quantity) if self.actual_quantity is not None else None,
            'template_minimum_quantity': float(self.template_minimum_quantity)
            if self.template_minimum_quantity is not None else None,
            'template_maximum_quantity': float(self.template_maximum_quantity)
            if self.template_maximum_quantity is not None else None,
            'notes': self.notes,
            'counted_at': self.counted_at.isoformat() if self.counted_at else None,
        }

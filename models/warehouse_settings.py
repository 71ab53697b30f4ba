"""
Daily Threshold Settings - per-weekday reorder levels for a warehouse item
"""
from . import db
from datetime import datetime

# 0 = Sunday, matching the settings screens
DAYS_OF_WEEK = {
    0: 'Sunday',
    1: 'Monday',
    2: 'Tuesday',
    3: 'Wednesday',
    4: 'Thursday',
    5: 'Friday',
    6: 'Saturday',
}


class DailyThresholdSetting(db.Model):
    """Override of the warehouse default thresholds for one day of the week"""
    __tablename__ = 'daily_threshold_settings'

    id = db.Column(db.Integer, primary_key=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey('warehouses.id'), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey('inventory_items.id'), nullable=False, index=True)
    day_of_week = db.Column(db.Integer, nullable=False)

    reorder_min = db.Column(db.Numeric(12, 3), nullable=True)
    reorder_max = db.Column(db.Numeric(12, 3), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('warehouse_id', 'item_id', 'day_of_week', name='uq_daily_threshold'),
        db.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='ck_day_of_week_range'),
    )

    def __repr__(self):
        return (f'<DailyThresholdSetting w={self.warehouse_id} item={self.item_id} '
                f'day={self.day_of_week} {self.reorder_min}-{self.reorder_max}>')

    @property
    def day_label(self):
        return DAYS_OF_WEEK.get(self.day_of_week, str(self.day_of_week))

    def to_dict(self):
        return {
            'warehouse_id': self.warehouse_id,
            'item_id': self.item_id,
            'day_of_week': self.day_of_week,
            'day_label': self.day_label,
            'reorder_min': float(self.reorder_min) if self.reorder_min is not None else None,
            'reorder_max': float(self.reorder_max) if self.reorder_max is not None else None,
        }

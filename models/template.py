from . import db
from datetime import datetime


class CountTemplate(db.Model):
    """Named subset of items used to scope a count"""
    __tablename__ = 'count_templates'

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True, index=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship('CountTemplateItem', backref='template', lazy='dynamic',
                            order_by='CountTemplateItem.sort_order')

    def __repr__(self):
        return f'<CountTemplate {self.id}: {self.name}>'


class CountTemplateItem(db.Model):
    """
    Template entry. minimum_quantity / maximum_quantity override every other
    threshold source once copied onto a CountItem.
    """
    __tablename__ = 'count_template_items'

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(db.Integer, db.ForeignKey('count_templates.id'), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey('inventory_items.id'), nullable=False, index=True)

    expected_quantity = db.Column(db.Numeric(12, 3), nullable=True)
    minimum_quantity = db.Column(db.Numeric(12, 3), nullable=True)
    maximum_quantity = db.Column(db.Numeric(12, 3), nullable=True)
    sort_order = db.Column(db.Integer, default=0)

    item = db.relationship('InventoryItem')

    __table_args__ = (
        db.UniqueConstraint('template_id', 'item_id', name='uq_template_item'),
    )

    def __repr__(self):
        return f'<CountTemplateItem t={self.template_id} item={self.item_id}>'

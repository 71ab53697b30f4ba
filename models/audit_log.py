from . import db
from datetime import datetime
import json


class CountAuditLog(db.Model):
    """
    Audit trail of count session transitions.
    Rows are only ever appended; voided and cancelled sessions keep theirs.
    """
    __tablename__ = 'count_audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    count_id = db.Column(db.Integer, db.ForeignKey('count_sessions.id'), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey('inventory_items.id'), nullable=True)

    action = db.Column(db.String(30), nullable=False)
    actor = db.Column(db.String(80), nullable=True)

    old_values = db.Column(db.Text, nullable=True)
    new_values = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    session = db.relationship('CountSession', backref=db.backref('audit_logs', lazy='dynamic'))

    ACTION_CREATE = 'create'
    ACTION_UPDATE_ITEM = 'update_item'
    ACTION_COMPLETE = 'complete'
    ACTION_CANCEL = 'cancel'
    ACTION_VOID = 'void'
    ACTION_REPAIR = 'repair'

    ACTION_LABELS = {
        'create': 'Count started',
        'update_item': 'Item counted',
        'complete': 'Count completed',
        'cancel': 'Count cancelled',
        'void': 'Count voided',
        'repair': 'Expected quantities repaired',
    }

    @property
    def action_label(self):
        return self.ACTION_LABELS.get(self.action, self.action)

    @classmethod
    def log(cls, count_id, action, item_id=None, actor=None,
            old_values=None, new_values=None, description=None):
        """
        Add an audit entry to the current db session.
        The caller commits together with the change it describes.
        """
        entry = cls(
            count_id=count_id,
            item_id=item_id,
            action=action,
            actor=actor,
            old_values=json.dumps(old_values, ensure_ascii=False, default=str) if old_values else None,
            new_values=json.dumps(new_values, ensure_ascii=False, default=str) if new_values else None,
            description=description,
        )
        db.session.add(entry)
        return entry

    def get_old_values_dict(self):
        if self.old_values:
            try:
                return json.loads(self.old_values)
            except ValueError:
                return {}
        return {}

    def get_new_values_dict(self):
        if self.new_values:
            try:
                return json.loads(self.new_values)
            except ValueError:
                return {}
        return {}

    def to_dict(self):
        return {
            'id': self.id,
            'count_id': self.count_id,
            'item_id': self.item_id,
            'action': self.action,
            'action_label': self.action_label,
            'actor': self.actor,
            'old_values': self.get_old_values_dict(),
            'new_values': self.get_new_values_dict(),
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<CountAuditLog {self.action} count={self.count_id}>'

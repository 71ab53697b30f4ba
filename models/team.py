from . import db
from datetime import datetime


class Team(db.Model):
    __tablename__ = 'teams'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship('InventoryItem', backref='team', lazy='dynamic')
    warehouses = db.relationship('Warehouse', backref='team', lazy='dynamic')
    count_sessions = db.relationship('CountSession', backref='team', lazy='dynamic')

    def __repr__(self):
        return f'<Team {self.code}: {self.name}>'

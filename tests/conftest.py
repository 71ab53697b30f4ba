"""
Shared fixtures: an in-memory app, a team with a warehouse, and item factories
"""
import os
import sys
from decimal import Decimal

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from config import TestingConfig
from models import db as _db, Team, Warehouse, WarehouseItem, InventoryItem, CountTemplate, CountTemplateItem


@pytest.fixture
def app():
    """Create application with a fresh in-memory database"""
    app = create_app(TestingConfig)

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def team(app):
    team = Team(code='TEST', name='Test Team', is_active=True)
    _db.session.add(team)
    _db.session.commit()
    return team


@pytest.fixture
def warehouse(app, team):
    warehouse = Warehouse(team_id=team.id, name='Test Warehouse')
    _db.session.add(warehouse)
    _db.session.commit()
    return warehouse


@pytest.fixture
def make_item(app, team):
    """Factory for catalog items"""
    counter = {'n': 0}

    def _make(name=None, current_stock=0, minimum=None, maximum=None,
              unit_cost=None, purchase_price=None, is_active=True):
        counter['n'] += 1
        item = InventoryItem(
            team_id=team.id,
            name=name or f'Item {counter["n"]}',
            sku=f'SKU{counter["n"]:03d}',
            current_stock=Decimal(str(current_stock)),
            minimum_threshold=Decimal(str(minimum)) if minimum is not None else None,
            maximum_threshold=Decimal(str(maximum)) if maximum is not None else None,
            unit_cost=Decimal(str(unit_cost)) if unit_cost is not None else None,
            purchase_price=Decimal(str(purchase_price)) if purchase_price is not None else None,
            is_active=is_active,
        )
        _db.session.add(item)
        _db.session.commit()
        return item

    return _make


@pytest.fixture
def make_warehouse_item(app, warehouse):
    def _make(item, reorder_min=None, reorder_max=None, quantity=None):
        warehouse_item = WarehouseItem(
            warehouse_id=warehouse.id,
            item_id=item.id,
            quantity=Decimal(str(quantity if quantity is not None else item.current_stock or 0)),
            reorder_min=Decimal(str(reorder_min)) if reorder_min is not None else None,
            reorder_max=Decimal(str(reorder_max)) if reorder_max is not None else None,
        )
        _db.session.add(warehouse_item)
        _db.session.commit()
        return warehouse_item

    return _make


@pytest.fixture
def make_template(app, team):
    """Factory: make_template([(item, {'minimum_quantity': 5, ...}), item, ...])"""
    def _make(entries, name='Test Template'):
        template = CountTemplate(team_id=team.id, name=name)
        _db.session.add(template)
        _db.session.flush()
        for order, entry in enumerate(entries):
            item, options = entry if isinstance(entry, tuple) else (entry, {})
            _db.session.add(CountTemplateItem(
                template_id=template.id,
                item_id=item.id,
                sort_order=order,
                expected_quantity=_dec(options.get('expected_quantity')),
                minimum_quantity=_dec(options.get('minimum_quantity')),
                maximum_quantity=_dec(options.get('maximum_quantity')),
            ))
        _db.session.commit()
        return template

    return _make


def _dec(value):
    return Decimal(str(value)) if value is not None else None


class ManualTimer:
    """threading.Timer stand-in that only fires when the test says so"""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    @property
    def pending(self):
        return self.started and not self.cancelled and not self.fired

    def fire(self):
        self.fired = True
        self.function(*self.args, **self.kwargs)


class ManualTimers:
    def __init__(self):
        self.created = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = ManualTimer(interval, function, args, kwargs)
        self.created.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.created if t.pending]

    def fire_pending(self):
        for timer in self.pending:
            timer.fire()


@pytest.fixture
def timers():
    return ManualTimers()

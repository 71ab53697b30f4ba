#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Database initialization script with seed data
Run this script to create tables and add a sample team, warehouse and template
"""

import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app import create_app
from models import (
    db, Team, Warehouse, WarehouseItem, InventoryItem,
    CountTemplate, CountTemplateItem
)
from services.threshold_service import ThresholdService


def init_database(seed=True):
    app = create_app()

    with app.app_context():
        db.drop_all()
        db.create_all()
        print("Database tables created.")

        if not seed:
            return

        team = Team(code='MAIN', name='Main Kitchen')
        db.session.add(team)
        db.session.flush()

        warehouse = Warehouse(team_id=team.id, name='Central Store')
        db.session.add(warehouse)
        db.session.flush()

        # sku, name, unit, stock, min, max, unit cost
        catalog = [
            ('RICE-25', 'Basmati rice', 'kg', 40, 20, 80, '2.40'),
            ('OIL-05', 'Sunflower oil', 'l', 18, 10, 40, '3.10'),
            ('EGG-30', 'Eggs (tray)', 'tray', 12, None, None, '6.50'),
            ('FLOUR-10', 'Flour', 'kg', 55, 25, 100, '0.90'),
            ('SUGAR-05', 'Sugar', 'kg', 30, 10, 60, '1.20'),
        ]

        items = []
        for sku, name, unit, stock, minimum, maximum, cost in catalog:
            item = InventoryItem(
                team_id=team.id,
                sku=sku,
                name=name,
                unit=unit,
                current_stock=Decimal(stock),
                minimum_threshold=Decimal(minimum) if minimum is not None else None,
                maximum_threshold=Decimal(maximum) if maximum is not None else None,
                unit_cost=Decimal(cost),
            )
            db.session.add(item)
            items.append(item)
        db.session.flush()

        for item in items:
            db.session.add(WarehouseItem(
                warehouse_id=warehouse.id,
                item_id=item.id,
                quantity=item.current_stock,
                average_cost=item.unit_cost,
            ))
        db.session.commit()
        print(f"{len(items)} items created")

        # Weekend mornings run higher on eggs
        eggs = items[2]
        ThresholdService.set_warehouse_defaults(warehouse.id, eggs.id, 6, 20)
        ThresholdService.set_item_day_settings(warehouse.id, eggs.id, 0, 10, 30)
        ThresholdService.set_item_day_settings(warehouse.id, eggs.id, 6, 10, 30)

        template = CountTemplate(team_id=team.id, name='Dry store weekly')
        db.session.add(template)
        db.session.flush()
        for order, item in enumerate(items[:3]):
            db.session.add(CountTemplateItem(
                template_id=template.id,
                item_id=item.id,
                sort_order=order,
                minimum_quantity=Decimal('15') if order == 0 else None,
                maximum_quantity=Decimal('60') if order == 0 else None,
            ))
        db.session.commit()
        print("Template 'Dry store weekly' created")

        print("\n" + "=" * 50)
        print("Database seeding completed successfully.")
        print("=" * 50)
        print("\nRun the system with:")
        print("   python app.py")


if __name__ == '__main__':
    init_database(seed='--empty' not in sys.argv)

"""
Warehouse Threshold Routes - daily reorder levels and live threshold lookup
"""
from flask import Blueprint, request, jsonify
from decimal import Decimal

from models import db, InventoryItem
from services.exceptions import NotFoundError
from services.stock_status import classify_stock
from services.threshold_service import ThresholdService
from utils.decorators import json_errors
import logging

logger = logging.getLogger(__name__)

warehouse_bp = Blueprint('warehouse', __name__, url_prefix='/warehouse')


def _num(value):
    if isinstance(value, Decimal):
        return float(value)
    return value


def _serialize_week(week):
    return {
        str(day): {
            'reorder_min': _num(levels['reorder_min']),
            'reorder_max': _num(levels['reorder_max']),
            'is_override': levels['is_override'],
        }
        for day, levels in week.items()
    }


@warehouse_bp.route('/<int:warehouse_id>/settings', methods=['GET'])
def warehouse_settings(warehouse_id):
    settings = ThresholdService.get_warehouse_settings(warehouse_id)
    return jsonify({'settings': [s.to_dict() for s in settings]})


@warehouse_bp.route('/<int:warehouse_id>/items/<int:item_id>/settings', methods=['GET'])
def item_weekly_settings(warehouse_id, item_id):
    week = ThresholdService.get_item_weekly_settings(warehouse_id, item_id)
    return jsonify({'warehouse_id': warehouse_id, 'item_id': item_id, 'days': _serialize_week(week)})


@warehouse_bp.route('/<int:warehouse_id>/items/<int:item_id>/settings/<int:day>', methods=['PUT'])
@json_errors
def item_day_settings_update(warehouse_id, item_id, day):
    data = request.get_json(silent=True) or {}
    setting = ThresholdService.set_item_day_settings(
        warehouse_id, item_id, day, data.get('reorder_min'), data.get('reorder_max')
    )
    return jsonify({'setting': setting.to_dict()})


@warehouse_bp.route('/<int:warehouse_id>/items/<int:item_id>/settings/all', methods=['POST'])
@json_errors
def item_settings_apply_all(warehouse_id, item_id):
    data = request.get_json(silent=True) or {}
    settings = ThresholdService.apply_to_all_days(
        warehouse_id, item_id, data.get('reorder_min'), data.get('reorder_max')
    )
    return jsonify({'settings': [s.to_dict() for s in settings]})


@warehouse_bp.route('/<int:warehouse_id>/items/<int:item_id>/settings/copy', methods=['POST'])
@json_errors
def item_settings_copy(warehouse_id, item_id):
    data = request.get_json(silent=True) or {}
    setting = ThresholdService.copy_day_settings(
        warehouse_id, item_id, data.get('from_day'), data.get('to_day')
    )
    return jsonify({'setting': setting.to_dict()})


@warehouse_bp.route('/<int:warehouse_id>/items/<int:item_id>/defaults', methods=['PUT'])
@json_errors
def item_defaults_update(warehouse_id, item_id):
    data = request.get_json(silent=True) or {}
    warehouse_item = ThresholdService.set_warehouse_defaults(
        warehouse_id, item_id, data.get('reorder_min'), data.get('reorder_max')
    )
    return jsonify({
        'warehouse_id': warehouse_id,
        'item_id': item_id,
        'reorder_min': _num(warehouse_item.reorder_min),
        'reorder_max': _num(warehouse_item.reorder_max),
    })


@warehouse_bp.route('/items/<int:item_id>/thresholds', methods=['GET'])
@json_errors
def item_thresholds(item_id):
    """Effective thresholds right now, and the status of current stock against them"""
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError('Item', item_id)

    thresholds = ThresholdService.resolve_for_item(
        item_id,
        warehouse_id=request.args.get('warehouse_id', type=int),
        day_of_week=request.args.get('day_of_week', type=int),
    )
    return jsonify({
        'item_id': item_id,
        'minimum': _num(thresholds['min']),
        'maximum': _num(thresholds['max']),
        'minimum_source': thresholds['min_source'],
        'maximum_source': thresholds['max_source'],
        'current_stock': _num(item.current_stock),
        'status': classify_stock(item.current_stock or 0, thresholds['min'], thresholds['max']),
    })

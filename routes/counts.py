"""
Inventory Count Routes - JSON surface over the count session engine
"""
from flask import Blueprint, request, jsonify
from decimal import Decimal

from services.inventory_count_service import InventoryCountService
from services.count_report_service import CountReportService
from utils.decorators import json_errors
import logging

logger = logging.getLogger(__name__)

counts_bp = Blueprint('counts', __name__, url_prefix='/counts')


def _num(value):
    if value is None:
        return None
    if isinstance(value, Decimal):
        return float(value)
    return value


def _payload():
    return request.get_json(silent=True) or {}


def _serialize_aggregates(aggregates):
    return {key: _num(value) for key, value in aggregates.items()}


def _serialize_row(row):
    data = row['count_item'].to_dict()
    data.update({
        'minimum': _num(row['minimum']),
        'maximum': _num(row['maximum']),
        'minimum_source': row['minimum_source'],
        'maximum_source': row['maximum_source'],
        'status': row['status'],
        'variance': _num(row['variance']),
        'variance_percentage': _num(row['variance_percentage']),
        'has_variance': row['has_variance'],
        'unit_cost': _num(row['unit_cost']),
        'financial_impact': _num(row['financial_impact']),
        'variance_cost': _num(row['variance_cost']),
    })
    return data


@counts_bp.route('/', methods=['GET'])
def count_list():
    """Recent count sessions"""
    sessions = InventoryCountService.list_sessions(
        team_id=request.args.get('team_id', type=int),
        status=request.args.get('status'),
        include_voided=request.args.get('include_voided', '1') != '0',
    )
    return jsonify({'counts': [s.to_dict() for s in sessions]})


@counts_bp.route('/', methods=['POST'])
@json_errors
def count_new():
    """Start a count from a template or from all active items"""
    data = _payload()
    session = InventoryCountService.start_inventory_count(
        name=data.get('name'),
        team_id=data.get('team_id'),
        template_id=data.get('template_id'),
        warehouse_id=data.get('warehouse_id'),
        notes=data.get('notes'),
        actor=data.get('actor'),
    )
    return jsonify({'count': session.to_dict()}), 201


@counts_bp.route('/<int:count_id>', methods=['GET'])
@json_errors
def count_detail(count_id):
    session = InventoryCountService.get_session(count_id)
    aggregates = InventoryCountService.get_session_aggregates(count_id)
    return jsonify({
        'count': session.to_dict(),
        'aggregates': _serialize_aggregates(aggregates),
    })


@counts_bp.route('/<int:count_id>/items', methods=['GET'])
@json_errors
def count_items(count_id):
    """Count rows with live thresholds, stock status and variance"""
    day = request.args.get('day_of_week', type=int)
    rows = CountReportService.get_count_item_rows(count_id, day_of_week=day)
    return jsonify({'items': [_serialize_row(r) for r in rows]})


@counts_bp.route('/<int:count_id>/items/initialize', methods=['POST'])
@json_errors
def count_items_initialize(count_id):
    created = InventoryCountService.initialize_count_items(count_id, _payload().get('template_id'))
    return jsonify({'created': created})


@counts_bp.route('/<int:count_id>/items/<int:item_id>', methods=['PUT', 'POST'])
@json_errors
def count_item_update(count_id, item_id):
    data = _payload()
    count_item = InventoryCountService.update_count_item(
        count_id, item_id, data.get('actual_quantity'),
        notes=data.get('notes'), actor=data.get('actor')
    )
    aggregates = InventoryCountService.get_session_aggregates(count_id)
    return jsonify({
        'item': count_item.to_dict(),
        'aggregates': _serialize_aggregates(aggregates),
    })


@counts_bp.route('/<int:count_id>/items/bulk', methods=['POST'])
@json_errors
def count_items_bulk(count_id):
    data = _payload()
    updated = InventoryCountService.bulk_update_count_items(
        count_id, data.get('updates') or [], actor=data.get('actor')
    )
    return jsonify({'updated': len(updated)})


@counts_bp.route('/<int:count_id>/complete', methods=['POST'])
@json_errors
def count_complete(count_id):
    session = InventoryCountService.complete_inventory_count(count_id, actor=_payload().get('actor'))
    return jsonify({'count': session.to_dict()})


@counts_bp.route('/<int:count_id>/cancel', methods=['POST'])
@json_errors
def count_cancel(count_id):
    data = _payload()
    session = InventoryCountService.cancel_inventory_count(
        count_id, data.get('reason'), actor=data.get('actor'))
    return jsonify({'count': session.to_dict()})


@counts_bp.route('/<int:count_id>/void', methods=['POST'])
@json_errors
def count_void(count_id):
    data = _payload()
    session = InventoryCountService.void_inventory_count(
        count_id, data.get('reason'), actor=data.get('actor'))
    return jsonify({'count': session.to_dict()})


@counts_bp.route('/<int:count_id>/repair', methods=['POST'])
@json_errors
def count_repair(count_id):
    repaired = InventoryCountService.repair_expected_quantities(count_id, actor=_payload().get('actor'))
    return jsonify({'repaired': repaired})


@counts_bp.route('/<int:count_id>/financial', methods=['GET'])
@json_errors
def count_financial(count_id):
    report = CountReportService.get_financial_impact(count_id)
    return jsonify({
        'session_id': report['session_id'],
        'status': report['status'],
        'is_voided': report['is_voided'],
        'is_excluded': report['is_excluded'],
        'total_financial_impact': _num(report['total_financial_impact']),
        'total_variance_cost': _num(report['total_variance_cost']),
        'total_gain': _num(report['total_gain']),
        'total_loss': _num(report['total_loss']),
        'items': [_serialize_row(r) for r in report['rows']],
    })


@counts_bp.route('/<int:count_id>/compare', methods=['GET'])
@json_errors
def count_compare(count_id):
    """Accuracy and quantity changes against the previous (or a chosen) completed count"""
    comparison = CountReportService.compare_with_previous(
        count_id, previous_session_id=request.args.get('previous_id', type=int))
    return jsonify({
        'session_id': comparison['session_id'],
        'previous_session_id': comparison['previous_session_id'],
        'metrics': {
            name: {key: _num(value) for key, value in metric.items()}
            for name, metric in comparison['metrics'].items()
        },
        'items': [{key: _num(value) for key, value in row.items()} for row in comparison['items']],
    })


@counts_bp.route('/<int:count_id>/audit', methods=['GET'])
@json_errors
def count_audit(count_id):
    entries = InventoryCountService.get_audit_trail(count_id)
    return jsonify({'entries': [e.to_dict() for e in entries]})


@counts_bp.route('/reports/variance', methods=['GET'])
def report_variance():
    summary = CountReportService.get_variance_summary(
        team_id=request.args.get('team_id', type=int),
        days=request.args.get('days', 30, type=int),
    )
    return jsonify(summary)


@counts_bp.route('/reports/financial', methods=['GET'])
def report_financial():
    summary = CountReportService.get_financial_summary(
        team_id=request.args.get('team_id', type=int),
        days=request.args.get('days', 30, type=int),
    )
    summary['sessions'] = [
        {
            **s,
            'count_date': s['count_date'].isoformat() if s['count_date'] else None,
            'total_financial_impact': _num(s['total_financial_impact']),
            'total_variance_cost': _num(s['total_variance_cost']),
        }
        for s in summary['sessions']
    ]
    for key in ('total_financial_impact', 'total_variance_cost', 'total_gain', 'total_loss'):
        summary[key] = _num(summary[key])
    return jsonify(summary)

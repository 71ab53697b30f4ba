"""
Count Report Service - per-item status/variance rows and financial aggregates

Thresholds are resolved live (latest settings), so a row's status can change
after completion unless a template snapshot pins it. Money figures use the
item's current unit cost. Voided counts contribute nothing to financial
totals but are still listed.
"""
from datetime import timedelta
from decimal import Decimal
from models import db, CountSession, CountItem, WarehouseItem, DailyThresholdSetting
from models.inventory_count import STATUS_COMPLETED
from services.inventory_count_service import InventoryCountService, get_variance_tolerance
from services.stock_status import classify_stock, summarize_statuses
from services.threshold_service import ThresholdContext, resolve_thresholds
from services.variance_service import (
    compute_variance, has_variance, compute_financial_impact, compute_variance_cost,
    variance_percentage, resolve_unit_cost
)
from utils.timezone import get_local_today, day_of_week as current_day_of_week
import logging

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def _money(value):
    return Decimal(value).quantize(Decimal('0.01'))


def _accuracy(aggregates):
    total = aggregates['total_items_count']
    if not total:
        return Decimal('0.00')
    return (Decimal(total - aggregates['variance_count']) / Decimal(total) * 100).quantize(Decimal('0.01'))


def _counted_or_snapshot(count_item):
    if count_item.actual_quantity is not None:
        return Decimal(str(count_item.actual_quantity))
    return Decimal(str(count_item.in_stock_quantity or 0))


class CountReportService:
    """Read-only reporting over count sessions"""

    @staticmethod
    def get_count_item_rows(session_id: int, day_of_week: int = None) -> list:
        """One row per CountItem with thresholds, status, variance and cost"""
        session = InventoryCountService.get_session(session_id)
        count_items = InventoryCountService.get_count_items(session_id)
        tolerance = get_variance_tolerance()
        day = current_day_of_week() if day_of_week is None else day_of_week

        warehouse_items = {}
        daily_settings = {}
        if session.warehouse_id is not None:
            warehouse_items = {
                wi.item_id: wi for wi in WarehouseItem.query.filter_by(warehouse_id=session.warehouse_id).all()
            }
            for setting in DailyThresholdSetting.query.filter_by(
                warehouse_id=session.warehouse_id, day_of_week=day
            ).all():
                daily_settings[setting.item_id] = setting

        rows = []
        for count_item in count_items:
            item = count_item.item
            context = ThresholdContext(
                count_item=count_item,
                warehouse_item=warehouse_items.get(count_item.item_id),
                daily_settings=daily_settings.get(count_item.item_id),
                day_of_week=day,
            )
            thresholds = resolve_thresholds(item, context)
            unit_cost = resolve_unit_cost(item)

            row = {
                'count_item': count_item,
                'item': item,
                'item_id': count_item.item_id,
                'expected_quantity': count_item.expected_quantity,
                'actual_quantity': count_item.actual_quantity,
                'minimum': thresholds['min'],
                'maximum': thresholds['max'],
                'minimum_source': thresholds['min_source'],
                'maximum_source': thresholds['max_source'],
                'unit_cost': unit_cost,
                'is_counted': count_item.is_counted,
                'status': None,
                'variance': None,
                'variance_percentage': None,
                'has_variance': False,
                'financial_impact': ZERO,
                'variance_cost': ZERO,
            }

            if count_item.is_counted:
                variance = compute_variance(count_item.actual_quantity, count_item.expected_quantity)
                row.update({
                    'status': classify_stock(count_item.actual_quantity, thresholds['min'], thresholds['max']),
                    'variance': variance,
                    'variance_percentage': variance_percentage(
                        count_item.actual_quantity, count_item.expected_quantity),
                    'has_variance': has_variance(variance, tolerance),
                    'financial_impact': compute_financial_impact(variance, unit_cost),
                    'variance_cost': compute_variance_cost(
                        count_item.actual_quantity, count_item.expected_quantity, unit_cost),
                })
            rows.append(row)

        return rows

    @staticmethod
    def get_status_summary(session_id: int, day_of_week: int = None) -> dict:
        rows = CountReportService.get_count_item_rows(session_id, day_of_week)
        return summarize_statuses([r for r in rows if r['is_counted']])

    @staticmethod
    def get_financial_impact(session_id: int) -> dict:
        """
        Financial totals of one session. A voided session reports zero totals
        with is_excluded set; its rows are still returned for audit.
        """
        session = InventoryCountService.get_session(session_id)
        rows = CountReportService.get_count_item_rows(session_id)
        totals = CountReportService._sum_rows(rows)
        excluded = bool(session.is_voided)

        if excluded:
            logger.debug(f"Count {session_id} is voided; excluded from financial totals")
            totals = {key: ZERO for key in totals}

        return {
            'session_id': session.id,
            'status': session.status,
            'is_voided': excluded,
            'is_excluded': excluded,
            'rows': rows,
            'total_financial_impact': _money(totals['total_financial_impact']),
            'total_variance_cost': _money(totals['total_variance_cost']),
            'total_gain': _money(totals['total_gain']),
            'total_loss': _money(totals['total_loss']),
        }

    @staticmethod
    def get_financial_summary(team_id: int = None, days: int = 30) -> dict:
        """Financial totals over completed counts in the window; voided counts add zero"""
        cutoff = get_local_today() - timedelta(days=days)
        query = CountSession.query.filter(
            CountSession.status == STATUS_COMPLETED,
            CountSession.count_date >= cutoff
        )
        if team_id is not None:
            query = query.filter(CountSession.team_id == team_id)
        sessions = query.order_by(CountSession.count_date.desc()).all()

        summary = {
            'sessions': [],
            'completed_sessions': 0,
            'voided_sessions': 0,
            'total_financial_impact': ZERO,
            'total_variance_cost': ZERO,
            'total_gain': ZERO,
            'total_loss': ZERO,
        }

        for session in sessions:
            report = CountReportService.get_financial_impact(session.id)
            summary['sessions'].append({
                'session_id': session.id,
                'name': session.name,
                'count_date': session.count_date,
                'is_voided': report['is_voided'],
                'total_financial_impact': report['total_financial_impact'],
                'total_variance_cost': report['total_variance_cost'],
            })
            if report['is_excluded']:
                summary['voided_sessions'] += 1
                continue
            summary['completed_sessions'] += 1
            for key in ('total_financial_impact', 'total_variance_cost', 'total_gain', 'total_loss'):
                summary[key] += report[key]

        for key in ('total_financial_impact', 'total_variance_cost', 'total_gain', 'total_loss'):
            summary[key] = _money(summary[key])
        return summary

    @staticmethod
    def get_variance_summary(team_id: int = None, days: int = 30) -> dict:
        """Summary of variances across completed, non-voided counts"""
        cutoff = get_local_today() - timedelta(days=days)
        query = CountSession.query.filter(
            CountSession.status == STATUS_COMPLETED,
            CountSession.is_voided == False,  # noqa: E712
            CountSession.count_date >= cutoff
        )
        if team_id is not None:
            query = query.filter(CountSession.team_id == team_id)
        sessions = query.all()

        if not sessions:
            return {'total_counts': 0, 'items_counted': 0, 'with_variance': 0,
                    'variance_rate': 0, 'avg_completion': 0}

        session_ids = [s.id for s in sessions]
        items_counted = db.session.query(db.func.count(CountItem.id)).filter(
            CountItem.count_id.in_(session_ids),
            CountItem.actual_quantity.isnot(None)
        ).scalar() or 0
        with_variance = sum(s.variance_count or 0 for s in sessions)
        avg_completion = sum(float(s.completion_percentage or 0) for s in sessions) / len(sessions)

        return {
            'total_counts': len(sessions),
            'items_counted': items_counted,
            'with_variance': with_variance,
            'variance_rate': round(with_variance / items_counted * 100, 2) if items_counted else 0,
            'avg_completion': round(avg_completion, 2),
        }

    @staticmethod
    def get_previous_session(session_id: int):
        """Latest completed, non-voided count of the same team and warehouse before this one"""
        session = InventoryCountService.get_session(session_id)
        query = CountSession.query.filter(
            CountSession.id != session.id,
            CountSession.status == STATUS_COMPLETED,
            CountSession.is_voided == False,  # noqa: E712
            CountSession.team_id == session.team_id,
            CountSession.warehouse_id == session.warehouse_id,
            CountSession.count_date <= session.count_date,
            CountSession.id < session.id,
        )
        return query.order_by(CountSession.count_date.desc(), CountSession.id.desc()).first()

    @staticmethod
    def compare_with_previous(session_id: int, previous_session_id: int = None) -> dict:
        """
        Compare a count against an earlier completed one.

        Accuracy is the share of items without variance, from the frozen
        aggregates of each session. Per-item quantities use the counted value,
        falling back to the stock snapshot for items left uncounted. Returns
        previous_session_id None and no metrics when there is nothing to
        compare against.
        """
        session = InventoryCountService.get_session(session_id)
        if previous_session_id is not None:
            previous = InventoryCountService.get_session(previous_session_id)
        else:
            previous = CountReportService.get_previous_session(session_id)

        result = {
            'session_id': session.id,
            'previous_session_id': previous.id if previous else None,
            'metrics': {},
            'items': [],
        }
        if previous is None:
            return result

        current_aggregates = InventoryCountService.get_session_aggregates(session.id)
        previous_aggregates = InventoryCountService.get_session_aggregates(previous.id)

        def _metric(current, before):
            return {'current': current, 'previous': before, 'change': current - before}

        result['metrics'] = {
            'accuracy': _metric(_accuracy(current_aggregates), _accuracy(previous_aggregates)),
            'variance_count': _metric(current_aggregates['variance_count'],
                                      previous_aggregates['variance_count']),
            'total_items_count': _metric(current_aggregates['total_items_count'],
                                         previous_aggregates['total_items_count']),
        }

        previous_items = {ci.item_id: ci for ci in InventoryCountService.get_count_items(previous.id)}
        for count_item in InventoryCountService.get_count_items(session.id):
            before = previous_items.get(count_item.item_id)
            current_quantity = _counted_or_snapshot(count_item)
            previous_quantity = _counted_or_snapshot(before) if before else ZERO
            unit_cost = resolve_unit_cost(count_item.item)
            change = current_quantity - previous_quantity
            result['items'].append({
                'item_id': count_item.item_id,
                'current_quantity': current_quantity,
                'previous_quantity': previous_quantity,
                'quantity_change': change,
                'value_change': _money(change * unit_cost),
                'has_comparison': before is not None,
            })

        return result

    @staticmethod
    def _sum_rows(rows):
        totals = {
            'total_financial_impact': ZERO,
            'total_variance_cost': ZERO,
            'total_gain': ZERO,
            'total_loss': ZERO,
        }
        for row in rows:
            if not row['is_counted']:
                continue
            impact = row['financial_impact']
            totals['total_financial_impact'] += impact
            totals['total_variance_cost'] += row['variance_cost']
            if impact > 0:
                totals['total_gain'] += impact
            elif impact < 0:
                totals['total_loss'] += -impact
        return totals

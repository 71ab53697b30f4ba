"""
Inventory Count Service - count session lifecycle

    create ──> in_progress ──complete──> completed ──void──> completed + is_voided
                    │
                    └──cancel──> cancelled

Items can only be counted while the session is in progress. Completion freezes
the session aggregates; voiding only flags the session for exclusion from
financial reporting and never touches CountItem rows.
"""
from decimal import Decimal
from flask import current_app, has_app_context
from models import db, InventoryItem, CountTemplate, CountTemplateItem, CountSession, CountItem, CountAuditLog
from models.inventory_count import STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_CANCELLED
from services.exceptions import (
    InvalidQuantityError, InvalidSourceError, InvalidUpdateError, NotFoundError, SessionClosedError,
    NotCompletedError, AlreadyVoidedError, EmptyCountError
)
from services.variance_service import compute_variance, has_variance, DEFAULT_TOLERANCE
from utils.decimal_utils import parse_decimal_input
from utils.timezone import get_local_today, utc_now
import logging

logger = logging.getLogger(__name__)


def get_variance_tolerance() -> Decimal:
    """Configured tolerance, or the 0.01 default outside an app context"""
    if has_app_context():
        return Decimal(str(current_app.config.get('VARIANCE_TOLERANCE', DEFAULT_TOLERANCE)))
    return DEFAULT_TOLERANCE


def compute_aggregates(count_items, tolerance=None) -> dict:
    """Derive session totals from CountItem rows"""
    if tolerance is None:
        tolerance = get_variance_tolerance()

    total = len(count_items)
    counted = [ci for ci in count_items if ci.actual_quantity is not None]
    variance_count = sum(
        1 for ci in counted
        if has_variance(compute_variance(ci.actual_quantity, ci.expected_quantity), tolerance)
    )
    if total:
        completion = (Decimal(len(counted)) / Decimal(total) * 100).quantize(Decimal('0.01'))
    else:
        completion = Decimal('0.00')

    return {
        'total_items_count': total,
        'counted_items_count': len(counted),
        'variance_count': variance_count,
        'completion_percentage': completion,
    }


def parse_quantity(value) -> Decimal:
    try:
        return parse_decimal_input(value, error_label='Quantity')
    except ValueError as e:
        raise InvalidQuantityError(value, str(e))


class InventoryCountService:
    """Service for count sessions"""

    @staticmethod
    def get_session(session_id: int) -> CountSession:
        session = db.session.get(CountSession, session_id)
        if not session:
            raise NotFoundError('Count', session_id)
        return session

    @staticmethod
    def list_sessions(team_id: int = None, status: str = None, include_voided: bool = True,
                      limit: int = 50) -> list:
        query = CountSession.query
        if team_id is not None:
            query = query.filter(CountSession.team_id == team_id)
        if status:
            query = query.filter(CountSession.status == status)
        if not include_voided:
            query = query.filter(CountSession.is_voided == False)  # noqa: E712
        return query.order_by(CountSession.created_at.desc(), CountSession.id.desc()).limit(limit).all()

    @staticmethod
    def start_inventory_count(name: str, team_id: int = None, template_id: int = None,
                              warehouse_id: int = None, notes: str = None,
                              count_date=None, actor: str = None) -> CountSession:
        """Open a new in-progress count, seeded from a template or all active items"""
        sources = InventoryCountService._load_sources(team_id, template_id)

        session = CountSession(
            name=name or f'Count {get_local_today().isoformat()}',
            team_id=team_id,
            warehouse_id=warehouse_id,
            template_id=template_id,
            notes=notes,
            count_date=count_date or get_local_today(),
            status=STATUS_IN_PROGRESS,
            is_voided=False,
        )
        db.session.add(session)
        db.session.flush()

        created = InventoryCountService._add_count_items(session, sources)
        InventoryCountService._refresh_aggregates(session)

        CountAuditLog.log(
            count_id=session.id,
            action=CountAuditLog.ACTION_CREATE,
            actor=actor,
            new_values={'template_id': template_id, 'items': created},
            description=f'Count started with {created} items'
        )
        db.session.commit()

        logger.info(f"Count {session.id} started: team={team_id} template={template_id} items={created}")
        return session

    @staticmethod
    def initialize_count_items(session_id: int, template_id: int = None) -> int:
        """
        Bulk-create CountItems for an existing in-progress session.
        Items already present in the session are skipped.
        """
        session = InventoryCountService._get_open_session(session_id)
        sources = InventoryCountService._load_sources(session.team_id, template_id)

        existing = {ci.item_id for ci in session.items.all()}
        sources = [s for s in sources if s['item'].id not in existing]

        created = InventoryCountService._add_count_items(session, sources)
        if template_id and not session.template_id:
            session.template_id = template_id
        InventoryCountService._refresh_aggregates(session)
        db.session.commit()

        logger.info(f"Count {session_id}: initialized {created} items (template={template_id})")
        return created

    @staticmethod
    def get_count_items(session_id: int) -> list:
        """All rows of a session, counted or not, voided or not"""
        InventoryCountService.get_session(session_id)
        return CountItem.query.filter_by(count_id=session_id).order_by(CountItem.id).all()

    @staticmethod
    def update_count_item(session_id: int, item_id: int, actual_quantity,
                          notes: str = None, actor: str = None) -> CountItem:
        """Record the counted quantity for one item"""
        session = InventoryCountService._get_open_session(session_id)
        quantity = parse_quantity(actual_quantity)
        count_item = InventoryCountService._get_count_item(session_id, item_id)

        previous = count_item.actual_quantity
        count_item.actual_quantity = quantity
        count_item.counted_at = utc_now()
        if notes:
            count_item.notes = notes

        InventoryCountService._refresh_aggregates(session)
        CountAuditLog.log(
            count_id=session_id,
            item_id=item_id,
            action=CountAuditLog.ACTION_UPDATE_ITEM,
            actor=actor,
            old_values={'actual_quantity': previous} if previous is not None else None,
            new_values={'actual_quantity': quantity},
        )
        db.session.commit()

        logger.info(f"Count {session_id}: item {item_id} counted {quantity}")
        return count_item

    @staticmethod
    def bulk_update_count_items(session_id: int, updates: list, actor: str = None) -> list:
        """
        Apply several counts at once. Every entry is validated before any is
        written, so one bad row rejects the whole batch.
        """
        session = InventoryCountService._get_open_session(session_id)

        if not isinstance(updates, (list, tuple)):
            raise InvalidUpdateError(updates, 'Updates must be a list')

        prepared = []
        for update in updates:
            if not isinstance(update, dict):
                raise InvalidUpdateError(update)
            item_id = update.get('item_id')
            quantity = parse_quantity(update.get('actual_quantity'))
            count_item = InventoryCountService._get_count_item(session_id, item_id)
            prepared.append((count_item, quantity, update.get('notes')))

        now = utc_now()
        for count_item, quantity, notes in prepared:
            count_item.actual_quantity = quantity
            count_item.counted_at = now
            if notes:
                count_item.notes = notes
            CountAuditLog.log(
                count_id=session_id,
                item_id=count_item.item_id,
                action=CountAuditLog.ACTION_UPDATE_ITEM,
                actor=actor,
                new_values={'actual_quantity': quantity},
            )

        InventoryCountService._refresh_aggregates(session)
        db.session.commit()

        logger.info(f"Count {session_id}: bulk updated {len(prepared)} items")
        return [count_item for count_item, _, _ in prepared]

    @staticmethod
    def complete_inventory_count(session_id: int, actor: str = None) -> CountSession:
        """Close the count and freeze its aggregates"""
        session = InventoryCountService._get_open_session(session_id)
        aggregates = compute_aggregates(session.items.all())

        if aggregates['counted_items_count'] == 0:
            logger.warning(f"Count {session_id}: completion rejected, nothing counted")
            raise EmptyCountError(session_id)

        session.total_items_count = aggregates['total_items_count']
        session.variance_count = aggregates['variance_count']
        session.completion_percentage = aggregates['completion_percentage']
        session.status = STATUS_COMPLETED
        session.completed_at = utc_now()

        CountAuditLog.log(
            count_id=session_id,
            action=CountAuditLog.ACTION_COMPLETE,
            actor=actor,
            new_values={
                'total_items_count': aggregates['total_items_count'],
                'variance_count': aggregates['variance_count'],
                'completion_percentage': aggregates['completion_percentage'],
            },
        )
        db.session.commit()

        logger.info(f"Count {session_id} completed: {aggregates['counted_items_count']}/"
                    f"{aggregates['total_items_count']} counted, {aggregates['variance_count']} variances")
        return session

    @staticmethod
    def cancel_inventory_count(session_id: int, reason: str = None, actor: str = None) -> CountSession:
        """Abandon an in-progress count; its rows stay for audit"""
        session = InventoryCountService._get_open_session(session_id)

        session.status = STATUS_CANCELLED
        if reason:
            session.notes = reason

        CountAuditLog.log(
            count_id=session_id,
            action=CountAuditLog.ACTION_CANCEL,
            actor=actor,
            description=reason,
        )
        db.session.commit()

        logger.info(f"Count {session_id} cancelled: {reason}")
        return session

    @staticmethod
    def void_inventory_count(session_id: int, reason: str = None, actor: str = None) -> CountSession:
        """
        Exclude a completed count from financial reporting.
        Stock ledger reversal, if any, belongs to the transaction subsystem.
        """
        session = InventoryCountService.get_session(session_id)

        if not session.is_completed:
            logger.warning(f"Count {session_id}: void rejected, status is {session.status}")
            raise NotCompletedError(session_id, session.status)
        if session.is_voided:
            logger.warning(f"Count {session_id}: void rejected, already voided")
            raise AlreadyVoidedError(session_id)

        session.is_voided = True
        session.void_reason = reason
        session.voided_at = utc_now()

        CountAuditLog.log(
            count_id=session_id,
            action=CountAuditLog.ACTION_VOID,
            actor=actor,
            description=reason,
        )
        db.session.commit()

        logger.info(f"Count {session_id} voided: {reason}")
        return session

    @staticmethod
    def repair_expected_quantities(session_id: int, actor: str = None) -> int:
        """
        Re-snapshot expected quantities of an in-progress count from its
        template (or current stock when there is none).
        """
        session = InventoryCountService._get_open_session(session_id)

        template_expected = {}
        if session.template_id:
            template_expected = {
                ti.item_id: ti.expected_quantity
                for ti in CountTemplateItem.query.filter_by(template_id=session.template_id).all()
            }

        repaired = 0
        for count_item in session.items.all():
            expected = template_expected.get(count_item.item_id)
            if expected is None:
                expected = count_item.item.current_stock if count_item.item else 0
            expected = Decimal(str(expected or 0))
            if count_item.expected_quantity != expected:
                count_item.expected_quantity = expected
                repaired += 1

        InventoryCountService._refresh_aggregates(session)
        CountAuditLog.log(
            count_id=session_id,
            action=CountAuditLog.ACTION_REPAIR,
            actor=actor,
            description=f'{repaired} expected quantities repaired'
        )
        db.session.commit()

        logger.info(f"Count {session_id}: repaired {repaired} expected quantities")
        return repaired

    @staticmethod
    def get_session_aggregates(session_id: int) -> dict:
        """
        Current aggregates: recomputed from the rows while in progress, the
        frozen values once the session is closed.
        """
        session = InventoryCountService.get_session(session_id)

        if session.is_in_progress:
            aggregates = compute_aggregates(session.items.all())
        else:
            aggregates = {
                'total_items_count': session.total_items_count or 0,
                'counted_items_count': session.items.filter(CountItem.actual_quantity.isnot(None)).count(),
                'variance_count': session.variance_count or 0,
                'completion_percentage': Decimal(str(session.completion_percentage or 0)),
            }

        aggregates.update({
            'session_id': session.id,
            'status': session.status,
            'is_voided': bool(session.is_voided),
        })
        return aggregates

    @staticmethod
    def get_audit_trail(session_id: int) -> list:
        InventoryCountService.get_session(session_id)
        return CountAuditLog.query.filter_by(count_id=session_id).order_by(CountAuditLog.id).all()

    # Internal helpers

    @staticmethod
    def _get_open_session(session_id):
        session = InventoryCountService.get_session(session_id)
        if not session.is_in_progress:
            logger.warning(f"Count {session_id}: change rejected, status is {session.status}")
            raise SessionClosedError(session_id, session.status)
        return session

    @staticmethod
    def _get_count_item(session_id, item_id):
        count_item = CountItem.query.filter_by(count_id=session_id, item_id=item_id).first()
        if not count_item:
            raise NotFoundError('Count item', item_id)
        return count_item

    @staticmethod
    def _load_sources(team_id, template_id):
        """
        Rows to seed a count from: dicts of item plus template expected/min/max.
        Fails before anything is written when the source is empty.
        """
        if template_id:
            template = db.session.get(CountTemplate, template_id)
            if not template:
                raise NotFoundError('Template', template_id)

            template_items = CountTemplateItem.query.join(
                InventoryItem, CountTemplateItem.item_id == InventoryItem.id
            ).filter(
                CountTemplateItem.template_id == template_id,
                InventoryItem.is_active == True  # noqa: E712
            ).order_by(CountTemplateItem.sort_order, CountTemplateItem.id).all()

            if not template_items:
                logger.warning(f"Template {template_id} has no active items")
                raise InvalidSourceError(f'Template {template_id} has no items', template_id=template_id)

            return [{
                'item': ti.item,
                'expected_quantity': ti.expected_quantity,
                'minimum_quantity': ti.minimum_quantity,
                'maximum_quantity': ti.maximum_quantity,
            } for ti in template_items]

        query = InventoryItem.query.filter_by(is_active=True)
        if team_id is not None:
            query = query.filter_by(team_id=team_id)
        items = query.order_by(InventoryItem.name).all()

        if not items:
            logger.warning(f"No active items to count for team {team_id}")
            raise InvalidSourceError('No active items to count')

        return [{
            'item': item,
            'expected_quantity': None,
            'minimum_quantity': None,
            'maximum_quantity': None,
        } for item in items]

    @staticmethod
    def _add_count_items(session, sources):
        for source in sources:
            item = source['item']
            in_stock = Decimal(str(item.current_stock or 0))
            expected = source['expected_quantity']
            db.session.add(CountItem(
                count_id=session.id,
                item_id=item.id,
                in_stock_quantity=in_stock,
                expected_quantity=expected if expected is not None else in_stock,
                template_minimum_quantity=source['minimum_quantity'],
                template_maximum_quantity=source['maximum_quantity'],
            ))
        db.session.flush()
        return len(sources)

    @staticmethod
    def _refresh_aggregates(session):
        aggregates = compute_aggregates(session.items.all())
        session.total_items_count = aggregates['total_items_count']
        session.variance_count = aggregates['variance_count']
        session.completion_percentage = aggregates['completion_percentage']
        return aggregates

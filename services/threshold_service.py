"""
Threshold Service - effective min/max resolution and daily threshold settings

Effective thresholds are resolved per bound, first non-null source wins:
    1. template override copied onto the CountItem
    2. daily warehouse setting for the day of week
    3. warehouse default (WarehouseItem.reorder_min/max)
    4. item default (InventoryItem.minimum/maximum_threshold)
    5. None
No min <= max check happens here; settings management validates on entry.
"""
from decimal import Decimal
from models import db, InventoryItem, WarehouseItem, DailyThresholdSetting, Warehouse
from services.exceptions import InvalidThresholdError, NotFoundError
from utils.decimal_utils import parse_decimal_input
from utils.timezone import day_of_week as current_day_of_week
import logging

logger = logging.getLogger(__name__)

SOURCE_TEMPLATE = 'template'
SOURCE_DAILY = 'daily'
SOURCE_WAREHOUSE = 'warehouse'
SOURCE_ITEM = 'item'


class ThresholdContext:
    """Everything besides the item that can supply a threshold"""

    def __init__(self, count_item=None, warehouse_item=None, daily_settings=None, day_of_week=None):
        self.count_item = count_item
        self.warehouse_item = warehouse_item
        self.daily_settings = daily_settings
        self.day_of_week = current_day_of_week() if day_of_week is None else day_of_week

    def daily_setting_for(self, item_id):
        """Pick the daily setting for this item and day out of whatever was supplied"""
        settings = self.daily_settings
        if settings is None:
            return None
        if not isinstance(settings, (list, tuple)):
            settings = [settings]
        for setting in settings:
            if setting.day_of_week != self.day_of_week:
                continue
            if item_id is not None and setting.item_id is not None and setting.item_id != item_id:
                continue
            return setting
        return None


def _first_set(candidates):
    for source, value in candidates:
        if value is not None:
            return value, source
    return None, None


def resolve_thresholds(item, context=None):
    """
    Resolve the effective (min, max) pair for an item.

    Returns a dict with 'min' and 'max' plus the source each came from.
    """
    context = context or ThresholdContext()
    count_item = context.count_item
    warehouse_item = context.warehouse_item
    daily = context.daily_setting_for(getattr(item, 'id', None))

    minimum, min_source = _first_set([
        (SOURCE_TEMPLATE, getattr(count_item, 'template_minimum_quantity', None)),
        (SOURCE_DAILY, getattr(daily, 'reorder_min', None)),
        (SOURCE_WAREHOUSE, getattr(warehouse_item, 'reorder_min', None)),
        (SOURCE_ITEM, getattr(item, 'minimum_threshold', None)),
    ])
    maximum, max_source = _first_set([
        (SOURCE_TEMPLATE, getattr(count_item, 'template_maximum_quantity', None)),
        (SOURCE_DAILY, getattr(daily, 'reorder_max', None)),
        (SOURCE_WAREHOUSE, getattr(warehouse_item, 'reorder_max', None)),
        (SOURCE_ITEM, getattr(item, 'maximum_threshold', None)),
    ])

    return {
        'min': minimum,
        'max': maximum,
        'min_source': min_source,
        'max_source': max_source,
    }


def _validate_band(reorder_min, reorder_max):
    try:
        reorder_min = parse_decimal_input(reorder_min, error_label='Minimum') if reorder_min is not None else None
        reorder_max = parse_decimal_input(reorder_max, error_label='Maximum') if reorder_max is not None else None
    except ValueError as e:
        raise InvalidThresholdError(str(e))
    if reorder_min is not None and reorder_max is not None and reorder_max < reorder_min:
        raise InvalidThresholdError('Maximum must be greater than or equal to minimum')
    return reorder_min, reorder_max


def _validate_day(day):
    if not isinstance(day, int) or isinstance(day, bool) or day < 0 or day > 6:
        raise InvalidThresholdError(f'Day of week must be 0 (Sunday) to 6 (Saturday): {day!r}')
    return day


class ThresholdService:
    """Reads collaborators for resolution and manages daily threshold settings"""

    @staticmethod
    def build_context(item_id, warehouse_id=None, count_item=None, day_of_week=None) -> ThresholdContext:
        """Load warehouse default and today's daily override, latest values"""
        warehouse_item = None
        daily_settings = None
        if warehouse_id is not None:
            warehouse_item = WarehouseItem.get_for(warehouse_id, item_id)
            day = current_day_of_week() if day_of_week is None else day_of_week
            daily_settings = DailyThresholdSetting.query.filter_by(
                warehouse_id=warehouse_id,
                item_id=item_id,
                day_of_week=day
            ).all()
            day_of_week = day
        return ThresholdContext(
            count_item=count_item,
            warehouse_item=warehouse_item,
            daily_settings=daily_settings,
            day_of_week=day_of_week,
        )

    @staticmethod
    def resolve_for_item(item_id, warehouse_id=None, count_item=None, day_of_week=None) -> dict:
        item = db.session.get(InventoryItem, item_id)
        if not item:
            raise NotFoundError('Item', item_id)
        context = ThresholdService.build_context(item_id, warehouse_id, count_item, day_of_week)
        return resolve_thresholds(item, context)

    @staticmethod
    def get_warehouse_settings(warehouse_id: int) -> list:
        """All daily threshold overrides of a warehouse"""
        return DailyThresholdSetting.query.filter_by(
            warehouse_id=warehouse_id
        ).order_by(DailyThresholdSetting.item_id, DailyThresholdSetting.day_of_week).all()

    @staticmethod
    def get_item_weekly_settings(warehouse_id: int, item_id: int) -> dict:
        """
        Seven-day view of an item's reorder levels.
        Days without an override show the warehouse default.
        """
        warehouse_item = WarehouseItem.get_for(warehouse_id, item_id)
        overrides = {
            s.day_of_week: s for s in DailyThresholdSetting.query.filter_by(
                warehouse_id=warehouse_id, item_id=item_id
            ).all()
        }

        week = {}
        for day in range(7):
            setting = overrides.get(day)
            if setting:
                week[day] = {
                    'reorder_min': setting.reorder_min,
                    'reorder_max': setting.reorder_max,
                    'is_override': True,
                }
            else:
                week[day] = {
                    'reorder_min': warehouse_item.reorder_min if warehouse_item else None,
                    'reorder_max': warehouse_item.reorder_max if warehouse_item else None,
                    'is_override': False,
                }
        return week

    @staticmethod
    def set_item_day_settings(warehouse_id: int, item_id: int, day: int,
                              reorder_min, reorder_max, commit=True) -> DailyThresholdSetting:
        """Create or update the override for one day"""
        _validate_day(day)
        reorder_min, reorder_max = _validate_band(reorder_min, reorder_max)
        ThresholdService._require_warehouse_item_refs(warehouse_id, item_id)

        setting = DailyThresholdSetting.query.filter_by(
            warehouse_id=warehouse_id, item_id=item_id, day_of_week=day
        ).first()
        if not setting:
            setting = DailyThresholdSetting(warehouse_id=warehouse_id, item_id=item_id, day_of_week=day)
            db.session.add(setting)

        setting.reorder_min = reorder_min
        setting.reorder_max = reorder_max

        if commit:
            db.session.commit()
            logger.info(f"Daily threshold set: warehouse={warehouse_id} item={item_id} "
                        f"day={day} min={reorder_min} max={reorder_max}")
        return setting

    @staticmethod
    def apply_to_all_days(warehouse_id: int, item_id: int, reorder_min, reorder_max) -> list:
        """Write the same override for every day of the week"""
        reorder_min, reorder_max = _validate_band(reorder_min, reorder_max)
        settings = [
            ThresholdService.set_item_day_settings(
                warehouse_id, item_id, day, reorder_min, reorder_max, commit=False
            )
            for day in range(7)
        ]
        db.session.commit()
        logger.info(f"Daily thresholds applied to all days: warehouse={warehouse_id} item={item_id}")
        return settings

    @staticmethod
    def copy_day_settings(warehouse_id: int, item_id: int, from_day: int, to_day: int) -> DailyThresholdSetting:
        """Copy one day's effective levels onto another day"""
        _validate_day(from_day)
        _validate_day(to_day)
        source = ThresholdService.get_item_weekly_settings(warehouse_id, item_id)[from_day]
        return ThresholdService.set_item_day_settings(
            warehouse_id, item_id, to_day, source['reorder_min'], source['reorder_max']
        )

    @staticmethod
    def set_warehouse_defaults(warehouse_id: int, item_id: int, reorder_min, reorder_max) -> WarehouseItem:
        """Update the warehouse-level default band, creating the record if needed"""
        reorder_min, reorder_max = _validate_band(reorder_min, reorder_max)
        ThresholdService._require_warehouse_item_refs(warehouse_id, item_id)

        warehouse_item = WarehouseItem.get_for(warehouse_id, item_id)
        if not warehouse_item:
            warehouse_item = WarehouseItem(warehouse_id=warehouse_id, item_id=item_id, quantity=Decimal('0'))
            db.session.add(warehouse_item)

        warehouse_item.reorder_min = reorder_min
        warehouse_item.reorder_max = reorder_max
        db.session.commit()
        logger.info(f"Warehouse defaults set: warehouse={warehouse_id} item={item_id} "
                    f"min={reorder_min} max={reorder_max}")
        return warehouse_item

    @staticmethod
    def _require_warehouse_item_refs(warehouse_id, item_id):
        if not db.session.get(Warehouse, warehouse_id):
            raise NotFoundError('Warehouse', warehouse_id)
        if not db.session.get(InventoryItem, item_id):
            raise NotFoundError('Item', item_id)

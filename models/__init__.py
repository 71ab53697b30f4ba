from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from .team import Team
from .item import InventoryItem
from .warehouse import Warehouse, WarehouseItem
from .warehouse_settings import DailyThresholdSetting, DAYS_OF_WEEK
from .template import CountTemplate, CountTemplateItem
from .inventory_count import CountSession, CountItem
from .audit_log import CountAuditLog

import os
import logging
from dotenv import load_dotenv

load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        logging.warning(f"Ignoring invalid value for {name}: {raw!r}, using {default}")
        return default


class Config:
    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'database', 'counts.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # SQLite is shared between request threads and debounce timer threads
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {
            'check_same_thread': False,
        },
        'pool_pre_ping': True,
    }

    # Count entry: quiet period before a typed quantity is persisted
    COUNT_DEBOUNCE_SECONDS = _env_float('COUNT_DEBOUNCE_SECONDS', 0.5)

    # Absolute difference above which actual vs expected counts as a variance
    VARIANCE_TOLERANCE = _env_float('VARIANCE_TOLERANCE', 0.01)

    # Organization local time, used to pick today's daily thresholds
    APP_UTC_OFFSET_MINUTES = int(_env_float('APP_UTC_OFFSET_MINUTES', 0))

    LOG_FILE = os.environ.get('LOG_FILE')

    JSON_AS_ASCII = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {
            'check_same_thread': False,
        },
    }
    LOG_FILE = None

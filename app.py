#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Inventory Count Reconciliation
Flask Application Entry Point
"""

import os
import logging
from datetime import datetime
from flask import Flask, jsonify
from sqlalchemy import event
from sqlalchemy.engine import Engine
from config import Config
from models import db
from routes import register_blueprints
from utils import timezone as app_timezone


class LocalTimezoneFormatter(logging.Formatter):
    """Stamp log records in the organization's local time"""

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=app_timezone.APP_TZ)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.strftime('%Y-%m-%d %H:%M:%S')

    def format(self, record):
        record.local_time = datetime.fromtimestamp(record.created, tz=app_timezone.APP_TZ).strftime('%Y-%m-%d %H:%M:%S')
        return super().format(record)


def configure_logging(log_file=None):
    formatter = LocalTimezoneFormatter(
        '%(local_time)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers = [console_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=logging.INFO, handlers=handlers)


logger = logging.getLogger(__name__)


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    # WAL lets debounce writer threads and request threads share the file
    if dbapi_connection.__class__.__module__.startswith('sqlite3'):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    app_timezone.configure_offset(app.config.get('APP_UTC_OFFSET_MINUTES', 0))
    configure_logging(app.config.get('LOG_FILE'))

    uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    if uri.startswith('sqlite:///') and ':memory:' not in uri:
        db_dir = os.path.dirname(uri.replace('sqlite:///', '', 1))
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir)

    db.init_app(app)

    register_blueprints(app)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found', 'code': 'not_found'}), 404

    return app


if __name__ == '__main__':
    flask_env = os.environ.get('FLASK_ENV', 'production')
    debug_mode = flask_env == 'development'

    app = create_app()
    with app.app_context():
        db.create_all()

    logger.info(f"Application starting in {flask_env} mode")
    logger.info(f"Debug mode: {debug_mode}")
    logger.info(f"Local time: {app_timezone.get_local_now().strftime('%Y-%m-%d %H:%M:%S')}")

    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 8084)), debug=debug_mode)

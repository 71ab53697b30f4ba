"""
Route Decorators
Translate count engine errors into JSON responses
"""
from functools import wraps
from flask import jsonify
from models import db
from services.exceptions import CountError
import logging

logger = logging.getLogger(__name__)


def json_errors(f):
    """
    Decorator for JSON endpoints.
    CountError -> its http_status with {'error', 'code'}; the db session is
    rolled back so a rejected request leaves nothing half-written.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except CountError as e:
            db.session.rollback()
            logger.info(f"{f.__name__} rejected: {e.code}: {e}")
            return jsonify({'error': str(e), 'code': e.code}), e.http_status
    return decorated_function

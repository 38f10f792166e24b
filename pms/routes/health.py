"""
Liveness and readiness probes. None of them require a token.
"""
import logging
from datetime import datetime

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from pms.extensions import db

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__, url_prefix='/health')

SERVICE_NAME = 'pms-backend'


def _probe(status, code=200, **extra):
    body = {'status': status, 'service': SERVICE_NAME, 'timestamp': datetime.utcnow().isoformat()}
    body.update(extra)
    return jsonify(body), code


def database_error():
    """None when the database answers, otherwise the error text"""
    try:
        db.session.execute(db.text('SELECT 1'))
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Readiness probe failed: %s", e)
        return str(e)
    return None


@health_bp.route('', methods=['GET'])
@health_bp.route('/ping', methods=['GET'])
def health_check():
    return _probe('healthy')


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    return _probe('alive')


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """Ready only when the database is reachable"""
    error = database_error()
    if error:
        return _probe('not_ready', 503, database=f'error: {error}')
    return _probe('ready', database='connected')

"""
Audit trail for patient, appointment, billing and user mutations.

Entries are written after the business change has been committed, in their
own commit, so a failing audit write never undoes the change it describes.
"""
import json
import logging
from datetime import date
from decimal import Decimal

from flask import g, has_app_context

from pms.extensions import db
from pms.models import AuditLog

logger = logging.getLogger(__name__)

ENTITY_TYPES = ('patient', 'appointment', 'billing', 'user')
ACTIONS = ('create', 'update', 'delete')


def _json_default(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f'{type(value).__name__} is not JSON serializable')


def _acting_user_id():
    if has_app_context() and getattr(g, 'current_user', None) is not None:
        return g.current_user.id
    return None


def log_audit(entity_type, action, user_id=None, entity_id=None, details=None, *, actor_from_request=False):
    """
    Append one audit entry.

    ``actor_from_request`` fills ``user_id`` from the authenticated user when
    it was not given. Returns the entry, or None when it could not be stored.
    """
    if entity_type not in ENTITY_TYPES or action not in ACTIONS:
        raise ValueError(f'Unknown audit event {entity_type}.{action}')
    if user_id is None and actor_from_request:
        user_id = _acting_user_id()

    entry = AuditLog(
        entity_type=entity_type,
        entity_id=None if entity_id is None else str(entity_id),
        action=action,
        user_id=user_id,
        details=json.dumps(details, default=_json_default) if details else None,
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.warning("Audit entry %s.%s for %s not stored: %s", entity_type, action, entity_id, e)
        return None
    return entry

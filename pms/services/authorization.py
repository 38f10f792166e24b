"""
Authorization gate: role checks and the last-admin rule.
"""
import logging
from typing import Optional

from pms.models import User
from pms.utils.rejections import Rejected, forbidden, unauthorized

logger = logging.getLogger(__name__)

ADMIN_ROLE = 'admin'


def authorize(user, *roles) -> Optional[Rejected]:
    """None if ``user`` holds one of ``roles``; 401 for no user, 403 otherwise."""
    if user is None:
        return unauthorized()
    if not user.has_any_role(*roles):
        logger.info("User %s (%s) denied, requires %s", user.id, user.role, roles)
        return forbidden(f'Permission denied. Required roles: {", ".join(roles)}')
    return None


def guard_admin_removal(store, target, new_role=None) -> Optional[Rejected]:
    """
    Refuse any operation that would leave the system without an admin.

    Called before deleting ``target`` (new_role=None) or changing its role to
    ``new_role``. Admins are counted through the store at call time, and the
    rule holds even when an admin targets their own account.
    """
    if not target.is_admin() or new_role == ADMIN_ROLE:
        return None
    remaining = store.count_by(User, role=ADMIN_ROLE) - 1
    if remaining < 1:
        logger.warning("Refused to remove last admin account %s", target.username)
        return forbidden('Cannot remove the last remaining admin account')
    return None

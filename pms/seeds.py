"""
Default user accounts. Idempotent: existing usernames are skipped.
"""
import logging

from flask import current_app

from pms.extensions import db
from pms.models import User

logger = logging.getLogger(__name__)


def default_users():
    return [
        {
            'username': current_app.config['DEFAULT_ADMIN_USERNAME'],
            'password': current_app.config['DEFAULT_ADMIN_PASSWORD'],
            'role': 'admin',
        },
    ]


def seed_default_users(users=None):
    """
    Create the given accounts (default: the bootstrap admin).

    Returns:
        list of usernames that were created
    """
    created = []
    for data in users or default_users():
        if User.query.filter_by(username=data['username']).first():
            logger.info("User '%s' already exists (skipping)", data['username'])
            continue
        user = User(username=data['username'], role=data.get('role', 'user'))
        user.set_password(data['password'])
        db.session.add(user)
        created.append(user.username)

    db.session.commit()
    if created:
        logger.info("Created %d user(s): %s", len(created), ", ".join(created))
    return created

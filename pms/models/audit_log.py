import json
from datetime import datetime

from pms.extensions import db


class AuditLog(db.Model):
    """
    One mutation of a patient, appointment, billing record or user account.

    Append-only. ``user_id`` is the acting account; it is cleared when that
    account is deleted (or when an account deletes itself).
    """
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(64), nullable=False, index=True)
    entity_id = db.Column(db.String(64), nullable=True, index=True)
    action = db.Column(db.String(32), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    details = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @classmethod
    def trail(cls, entity_type, entity_id):
        """Entries for one entity, oldest first"""
        return cls.query.filter_by(entity_type=entity_type, entity_id=str(entity_id)).order_by(cls.id.asc())

    @property
    def details_dict(self):
        if not self.details:
            return {}
        try:
            return json.loads(self.details)
        except (TypeError, ValueError):
            return {}

    def to_dict(self):
        return {
            'id': self.id,
            'entityType': self.entity_type,
            'entityId': self.entity_id,
            'action': self.action,
            'userId': self.user_id,
            'details': self.details_dict,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.entity_type}.{self.action} {self.entity_id}>"

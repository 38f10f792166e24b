from pms.extensions import db
from .base import TimestampMixin


class Patient(db.Model, TimestampMixin):
    __tablename__ = 'patients'

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(50), nullable=False, index=True)
    dob = db.Column(db.Date, nullable=False)
    medical_history = db.Column(db.Text, default='')

    # Soft delete (medical data is never hard-deleted)
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    # Relationships
    appointments = db.relationship('Appointment', backref='patient', lazy='dynamic')
    billing_records = db.relationship('BillingRecord', backref='patient', lazy='dynamic')

    @classmethod
    def active(cls):
        """Query over patients that have not been soft-deleted"""
        return cls.query.filter(cls.deleted_at.is_(None))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'dob': self.dob.isoformat() if self.dob else None,
            'medicalHistory': self.medical_history or '',
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Patient {self.name} ({self.id})>"

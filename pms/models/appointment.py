from pms.extensions import db
from .base import TimestampMixin


class Appointment(db.Model, TimestampMixin):
    __tablename__ = 'appointments'
    # One doctor, one slot: the database rejects the losing write of a race
    __table_args__ = (
        db.UniqueConstraint('doctor_id', 'date', 'time', name='uq_appointment_slot'),
    )

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(5), nullable=False)  # "HH:MM"
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'patientId': self.patient_id,
            'doctorId': self.doctor_id,
            'date': self.date.isoformat() if self.date else None,
            'time': self.time,
            'notes': self.notes or '',
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Appointment {self.patient_id} - doctor {self.doctor_id} on {self.date} {self.time}>"

from pms.extensions import db
from .base import TimestampMixin
import json


class BillingRecord(db.Model, TimestampMixin):
    """
    Billing record - one per billing event, never mutated.

    Services are kept as an ordered JSON list of {name, price} in
    services_json; total is computed at creation time from services,
    tax and discount.
    """

    __tablename__ = "billing_records"

    id = db.Column(db.Integer, primary_key=True)

    # Patient reference
    patient_id = db.Column(
        db.Integer, db.ForeignKey("patients.id"), nullable=False, index=True
    )

    # JSON list: [{name, price}, ...]
    services_json = db.Column(db.Text, nullable=False)

    tax = db.Column(db.Numeric(12, 2), nullable=True)
    discount = db.Column(db.Numeric(12, 2), nullable=True)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    created_by = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def __repr__(self):
        return f"<BillingRecord {self.id} - Patient: {self.patient_id} total={self.total}>"

    @property
    def services(self):
        if not self.services_json:
            return []
        try:
            data = json.loads(self.services_json)
        except (TypeError, json.JSONDecodeError):
            return []
        return data if isinstance(data, list) else []

    @services.setter
    def services(self, items):
        self.services_json = json.dumps(list(items))

    def to_dict(self):
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "services": self.services,
            "tax": float(self.tax) if self.tax is not None else None,
            "discount": float(self.discount) if self.discount is not None else None,
            "total": float(self.total) if self.total is not None else None,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

from .patient import Patient
from .appointment import Appointment
from .user import User, ROLES
from .billing import BillingRecord
from .audit_log import AuditLog

__all__ = ["Patient", "Appointment", "User", "ROLES", "BillingRecord", "AuditLog"]

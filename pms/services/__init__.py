from .store import DataStore

from .billing import compute_total, create_billing_record, to_decimal

from .validation import validate, require_existing, parse_date

from .scheduling import check_conflict, schedule_appointment

from .authorization import authorize, guard_admin_removal

__all__ = [
    # Data store
    "DataStore",
    # Billing
    "compute_total",
    "create_billing_record",
    "to_decimal",
    # Validation
    "validate",
    "require_existing",
    "parse_date",
    # Scheduling
    "check_conflict",
    "schedule_appointment",
    # Authorization
    "authorize",
    "guard_admin_removal",
]

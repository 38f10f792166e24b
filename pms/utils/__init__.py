from .rejections import Reason, Rejected

from .audit import log_audit

__all__ = [
    # Rejections
    "Reason",
    "Rejected",
    # Audit
    "log_audit",
]

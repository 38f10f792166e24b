from .users import users_bp
from .patient import patient_bp
from .appointment import appointment_bp
from .billing import billing_bp
from .health import health_bp

__all__ = ['users_bp', 'patient_bp', 'appointment_bp', 'billing_bp', 'health_bp']

"""
Validation engine for every mutating endpoint.

``validate(kind, fields)`` returns ``(normalized, None)`` when the request is
acceptable and ``(None, Rejected)`` otherwise. Existence of referenced rows is
a separate rule (``require_existing``) run against the data store after the
field rules pass.
"""
import logging
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from pms.models import ROLES
from pms.services.billing import to_decimal
from pms.utils.rejections import (
    Rejected,
    invalid_format,
    invalid_value,
    missing_field,
    not_found,
)

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 50
USERNAME_MAX_LENGTH = 80

# "<" followed by a tag-like sequence: <script>, </div>, <!-- ...
_MARKUP_RE = re.compile(r'<\s*/?\s*[A-Za-z!]')
_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')
_NAME_PUNCTUATION = frozenset(" '-.,()")

Result = Tuple[Optional[Dict[str, Any]], Optional[Rejected]]


def parse_date(value):
    """
    Parse a calendar date.

    Accepts ``YYYY-MM-DD`` and ISO-8601 datetimes (the calendar day is kept,
    a trailing ``Z`` is read as UTC). Returns None when the value does not
    parse.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text[-1] in ('Z', 'z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(text, '%Y-%m-%d').date()
    except ValueError:
        return None


def normalize_time(value):
    """Return a zero-padded "HH:MM" string, or None if value is not a clock time"""
    if not isinstance(value, str):
        return None
    match = _TIME_RE.match(value.strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f'{hour:02d}:{minute:02d}'


def _is_name_char(ch):
    if 0xFE00 <= ord(ch) <= 0xFE0F or 0xE0100 <= ord(ch) <= 0xE01EF:
        # variation selectors turn plain characters into emoji
        return False
    category = unicodedata.category(ch)
    if category == 'Me':
        return False
    return category[0] in ('L', 'M', 'N') or ch in _NAME_PUNCTUATION


def _pick(fields, *keys):
    """First present key wins; accepts both camelCase and snake_case payloads"""
    for key in keys:
        if key in fields:
            return fields[key]
    return None


def _has_any(fields, *keys):
    return any(key in fields for key in keys)


def _coerce_id(value):
    """Integer id or None. Ids that are not integers cannot reference anything."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def validate_name(value) -> Tuple[Optional[str], Optional[Rejected]]:
    """Length and allowlist apply to the name as sent; only surrounding spaces are trimmed."""
    if value is None:
        return None, missing_field('name')
    if not isinstance(value, str):
        return None, invalid_format('name', 'Name must be a string')
    name = value.strip(' ')
    if not name:
        return None, missing_field('name')
    if len(value) > NAME_MAX_LENGTH:
        return None, invalid_value('name', f'Name must be at most {NAME_MAX_LENGTH} characters')
    if _MARKUP_RE.search(value):
        return None, invalid_value('name', 'Name must not contain markup')
    if not all(_is_name_char(ch) for ch in value):
        return None, invalid_value('name', 'Name contains characters that are not allowed')
    return name, None


def validate_dob(value, today=None) -> Tuple[Optional[date], Optional[Rejected]]:
    if _is_blank(value):
        return None, missing_field('dob')
    dob = parse_date(value)
    if dob is None:
        return None, invalid_format('dob', 'Invalid date format. Use YYYY-MM-DD')
    if dob > (today or date.today()):
        return None, invalid_value('dob', 'Date of birth cannot be in the future')
    return dob, None


def _validate_medical_history(value):
    if value is None:
        return '', None
    if not isinstance(value, str):
        return None, invalid_format('medicalHistory', 'Medical history must be text')
    return value, None


def _validate_patient_create(fields, today=None) -> Result:
    name, rejected = validate_name(fields.get('name'))
    if rejected:
        return None, rejected
    dob, rejected = validate_dob(fields.get('dob'), today)
    if rejected:
        return None, rejected
    history, rejected = _validate_medical_history(_pick(fields, 'medicalHistory', 'medical_history'))
    if rejected:
        return None, rejected
    return {'name': name, 'dob': dob, 'medical_history': history}, None


def _validate_patient_update(fields, today=None) -> Result:
    # Only name and medical history are mutable
    if not _has_any(fields, 'name', 'medicalHistory', 'medical_history'):
        return None, missing_field('name')
    normalized = {}
    if 'name' in fields:
        name, rejected = validate_name(fields['name'])
        if rejected:
            return None, rejected
        normalized['name'] = name
    if _has_any(fields, 'medicalHistory', 'medical_history'):
        history, rejected = _validate_medical_history(_pick(fields, 'medicalHistory', 'medical_history'))
        if rejected:
            return None, rejected
        normalized['medical_history'] = history
    return normalized, None


def _validate_amount(field, value):
    amount = to_decimal(value)
    if amount is None:
        return None, invalid_format(field, f'"{field}" must be a number')
    if amount < 0:
        return None, invalid_value(field, f'"{field}" must not be negative')
    return amount, None


def _validate_billing_create(fields, today=None) -> Result:
    raw_patient_id = _pick(fields, 'patientId', 'patient_id')
    if _is_blank(raw_patient_id):
        return None, missing_field('patientId')

    services = fields.get('services')
    if services is None or services == []:
        return None, missing_field('services')
    if not isinstance(services, list):
        return None, invalid_format('services', 'Services must be a non-empty list')

    normalized_services = []
    for idx, item in enumerate(services, start=1):
        if not isinstance(item, dict):
            return None, invalid_format('services', f'Service {idx}: must be an object with name and price')
        name = item.get('name')
        if _is_blank(name) or not isinstance(name, str):
            return None, missing_field(f'services[{idx}].name')
        if item.get('price') is None:
            return None, missing_field(f'services[{idx}].price')
        price = to_decimal(item['price'])
        if price is None:
            return None, invalid_format('services', f'Service {idx}: price must be a number')
        normalized_services.append({'name': name.strip(), 'price': price})

    # Any negative price rejects the whole record
    if any(service['price'] < 0 for service in normalized_services):
        return None, invalid_value('services', 'Service prices must not be negative')

    normalized = {
        'patient_id': _coerce_id(raw_patient_id),
        'services': normalized_services,
        'tax': None,
        'discount': None,
    }
    for field in ('tax', 'discount'):
        if fields.get(field) is not None:
            amount, rejected = _validate_amount(field, fields[field])
            if rejected:
                return None, rejected
            normalized[field] = amount
    return normalized, None


def _validate_appointment_create(fields, today=None) -> Result:
    required = (
        ('patientId', ('patientId', 'patient_id')),
        ('doctorId', ('doctorId', 'doctor_id')),
        ('date', ('date',)),
        ('time', ('time',)),
    )
    for label, keys in required:
        if _is_blank(_pick(fields, *keys)):
            return None, missing_field(label)

    appointment_date = parse_date(fields['date'])
    if appointment_date is None:
        return None, invalid_format('date', 'Invalid date format. Use YYYY-MM-DD')

    time_str = normalize_time(fields['time'])
    if time_str is None:
        return None, invalid_format('time', 'Invalid time format. Use HH:MM (e.g., 10:30)')

    notes = fields.get('notes')
    if notes is not None and not isinstance(notes, str):
        return None, invalid_format('notes', 'Notes must be text')

    return {
        'patient_id': _coerce_id(_pick(fields, 'patientId', 'patient_id')),
        'doctor_id': _coerce_id(_pick(fields, 'doctorId', 'doctor_id')),
        'date': appointment_date,
        'time': time_str,
        'notes': notes or '',
    }, None


def _validate_login(fields, today=None) -> Result:
    for field in ('username', 'password'):
        value = fields.get(field)
        if _is_blank(value) or not isinstance(value, str):
            return None, missing_field(field)
    return {'username': fields['username'].strip(), 'password': fields['password']}, None


def _validate_role(value):
    if value not in ROLES:
        return None, invalid_value('role', f'Role must be one of: {", ".join(ROLES)}')
    return value, None


def _validate_user_create(fields, today=None) -> Result:
    username = fields.get('username')
    if _is_blank(username) or not isinstance(username, str):
        return None, missing_field('username')
    username = username.strip()
    if len(username) > USERNAME_MAX_LENGTH:
        return None, invalid_value('username', f'Username must be at most {USERNAME_MAX_LENGTH} characters')
    password = fields.get('password')
    if _is_blank(password) or not isinstance(password, str):
        return None, missing_field('password')
    role, rejected = _validate_role(fields.get('role') or 'user')
    if rejected:
        return None, rejected
    return {'username': username, 'password': password, 'role': role}, None


def _validate_user_update(fields, today=None) -> Result:
    if not _has_any(fields, 'role', 'password'):
        return None, missing_field('role')
    normalized = {}
    if 'role' in fields:
        role, rejected = _validate_role(fields['role'])
        if rejected:
            return None, rejected
        normalized['role'] = role
    if 'password' in fields:
        password = fields['password']
        if _is_blank(password) or not isinstance(password, str):
            return None, missing_field('password')
        normalized['password'] = password
    return normalized, None


VALIDATORS = {
    'patient-create': _validate_patient_create,
    'patient-update': _validate_patient_update,
    'billing-create': _validate_billing_create,
    'appointment-create': _validate_appointment_create,
    'login': _validate_login,
    'user-create': _validate_user_create,
    'user-update': _validate_user_update,
}


def validate(kind: str, fields: Optional[dict], today: Optional[date] = None) -> Result:
    """
    Validate raw request fields.

    Args:
        kind: one of the keys of VALIDATORS, e.g. 'patient-create'
        fields: decoded JSON body
        today: reference date for "not in the future" checks (defaults to today)

    Returns:
        (normalized, None) on success, (None, Rejected) otherwise
    """
    try:
        validator = VALIDATORS[kind]
    except KeyError:
        raise ValueError(f'Unknown validation kind: {kind}')

    if not isinstance(fields, dict):
        return None, invalid_format('body', 'Request body must be a JSON object')

    normalized, rejected = validator(fields, today)
    if rejected:
        logger.info("Validation rejected %s: %s (%s)", kind, rejected.reason.value, rejected.message)
    return normalized, rejected


def require_existing(store, model, obj_id, label, field=None, **filters):
    """
    Look a referenced row up in the data store.

    Returns (obj, None) when found and matching ``filters``, otherwise
    (None, Rejected(NOT_FOUND)).
    """
    obj = store.get(model, obj_id) if obj_id is not None else None
    if obj is None or any(getattr(obj, key) != value for key, value in filters.items()):
        return None, not_found(label, field)
    return obj, None

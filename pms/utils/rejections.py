"""
Rejection taxonomy shared by validation, scheduling, billing and authorization.

A Rejected value is returned, never raised: callers test for it and hand it
to the HTTP layer with ``to_response()``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from flask import jsonify


class Reason(str, Enum):
    MISSING_FIELD = 'missing_field'
    INVALID_FORMAT = 'invalid_format'
    INVALID_VALUE = 'invalid_value'
    NOT_FOUND = 'not_found'
    INVALID_CREDENTIALS = 'invalid_credentials'
    UNAUTHORIZED = 'unauthorized'
    FORBIDDEN = 'forbidden'
    CONFLICT = 'conflict'


STATUS_CODES = {
    Reason.MISSING_FIELD: 400,
    Reason.INVALID_FORMAT: 400,
    Reason.INVALID_VALUE: 400,
    Reason.INVALID_CREDENTIALS: 400,
    Reason.CONFLICT: 400,
    Reason.UNAUTHORIZED: 401,
    Reason.FORBIDDEN: 403,
    Reason.NOT_FOUND: 404,
}


@dataclass(frozen=True)
class Rejected:
    reason: Reason
    message: str
    field: Optional[str] = None

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.reason]

    def to_dict(self) -> dict:
        body = {
            'success': False,
            'error': self.message,
            'reason': self.reason.value,
        }
        if self.field:
            body['field'] = self.field
        return body

    def to_response(self):
        return jsonify(self.to_dict()), self.status_code


def missing_field(field: str) -> Rejected:
    return Rejected(Reason.MISSING_FIELD, f'Field "{field}" is required', field)


def invalid_format(field: str, message: str) -> Rejected:
    return Rejected(Reason.INVALID_FORMAT, message, field)


def invalid_value(field: str, message: str) -> Rejected:
    return Rejected(Reason.INVALID_VALUE, message, field)


def not_found(entity: str, field: Optional[str] = None) -> Rejected:
    return Rejected(Reason.NOT_FOUND, f'{entity} not found', field)


def conflict(message: str, field: Optional[str] = None) -> Rejected:
    return Rejected(Reason.CONFLICT, message, field)


def forbidden(message: str = 'Permission denied') -> Rejected:
    return Rejected(Reason.FORBIDDEN, message)


def unauthorized(message: str = 'Authentication required') -> Rejected:
    return Rejected(Reason.UNAUTHORIZED, message)


# One message for both unknown user and wrong password
INVALID_CREDENTIALS = Rejected(Reason.INVALID_CREDENTIALS, 'Invalid username or password')

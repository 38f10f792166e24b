from datetime import date
from decimal import Decimal

import pytest

from pms.services.validation import normalize_time, parse_date, validate
from pms.utils.rejections import Reason

TODAY = date(2024, 6, 1)


def _patient(**overrides):
    fields = {'name': 'Alice Johnson', 'dob': '1990-05-17', 'medicalHistory': 'None'}
    fields.update(overrides)
    return fields


def test_patient_create_normalizes_fields():
    fields, rejected = validate('patient-create', _patient(name='  Alice Johnson '), today=TODAY)
    assert rejected is None
    assert fields == {'name': 'Alice Johnson', 'dob': date(1990, 5, 17), 'medical_history': 'None'}


def test_name_of_50_characters_is_accepted():
    _, rejected = validate('patient-create', _patient(name='a' * 50), today=TODAY)
    assert rejected is None


def test_name_longer_than_50_characters_is_rejected():
    _, rejected = validate('patient-create', _patient(name='a' * 51), today=TODAY)
    assert rejected.reason == Reason.INVALID_VALUE
    assert rejected.field == 'name'


@pytest.mark.parametrize('name', ['José Núñez', "Declan O'Brien", 'Eun-ji Park', 'Dr. Smith, Jr.', '王小明'])
def test_international_names_are_accepted(name):
    _, rejected = validate('patient-create', _patient(name=name), today=TODAY)
    assert rejected is None


@pytest.mark.parametrize('name', ['<script>alert(1)</script>', 'Bob </b>', 'Smiley \U0001F600', 'Star ⭐️', 'a;b'])
def test_markup_and_symbols_are_rejected(name):
    _, rejected = validate('patient-create', _patient(name=name), today=TODAY)
    assert rejected.reason == Reason.INVALID_VALUE
    assert rejected.field == 'name'


def test_missing_name_is_missing_field():
    fields = _patient()
    del fields['name']
    _, rejected = validate('patient-create', fields, today=TODAY)
    assert rejected.reason == Reason.MISSING_FIELD
    assert rejected.field == 'name'


def test_dob_in_the_future_is_rejected():
    _, rejected = validate('patient-create', _patient(dob='2024-06-02'), today=TODAY)
    assert rejected.reason == Reason.INVALID_VALUE
    assert rejected.field == 'dob'


def test_dob_of_today_is_accepted():
    fields, rejected = validate('patient-create', _patient(dob='2024-06-01'), today=TODAY)
    assert rejected is None
    assert fields['dob'] == TODAY


def test_unparseable_dob_is_invalid_format():
    _, rejected = validate('patient-create', _patient(dob='17/05/1990'), today=TODAY)
    assert rejected.reason == Reason.INVALID_FORMAT
    assert rejected.field == 'dob'


@pytest.mark.parametrize('body', [None, [], 'name=Alice'])
def test_non_object_body_is_invalid_format(body):
    _, rejected = validate('patient-create', body, today=TODAY)
    assert rejected.reason == Reason.INVALID_FORMAT
    assert rejected.field == 'body'


@pytest.mark.parametrize('kind, first_required', [
    ('patient-create', 'name'),
    ('billing-create', 'patientId'),
    ('appointment-create', 'patientId'),
    ('login', 'username'),
    ('user-create', 'username'),
])
def test_empty_object_reports_first_missing_field(kind, first_required):
    _, rejected = validate(kind, {}, today=TODAY)
    assert rejected.reason == Reason.MISSING_FIELD
    assert rejected.field == first_required


def test_trailing_whitespace_counts_towards_name_length():
    _, rejected = validate('patient-create', _patient(name='A' * 50 + ' '), today=TODAY)
    assert rejected.reason == Reason.INVALID_VALUE
    assert rejected.field == 'name'


@pytest.mark.parametrize('name', ['John\x1f', '\x1cJohn', 'John\x85', 'John\u3000', '\tJohn'])
def test_surrounding_control_characters_are_not_trimmed_away(name):
    _, rejected = validate('patient-create', _patient(name=name), today=TODAY)
    assert rejected.reason == Reason.INVALID_VALUE
    assert rejected.field == 'name'


def test_blank_name_is_missing():
    _, rejected = validate('patient-create', _patient(name='   '), today=TODAY)
    assert rejected.reason == Reason.MISSING_FIELD


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        validate('prescription-create', {'name': 'x'})


def test_patient_update_only_keeps_mutable_fields():
    fields, rejected = validate('patient-update', {'name': 'New Name', 'dob': '2000-01-01'})
    assert rejected is None
    assert fields == {'name': 'New Name'}


def test_patient_update_without_mutable_fields_is_rejected():
    _, rejected = validate('patient-update', {'dob': '2000-01-01'})
    assert rejected.reason == Reason.MISSING_FIELD


def test_billing_create_converts_prices_to_decimal():
    fields, rejected = validate('billing-create', {
        'patientId': '7',
        'services': [{'name': 'Consultation', 'price': 50.5}],
        'tax': 2,
    })
    assert rejected is None
    assert fields['patient_id'] == 7
    assert fields['services'] == [{'name': 'Consultation', 'price': Decimal('50.5')}]
    assert fields['tax'] == Decimal('2')
    assert fields['discount'] is None


def test_billing_negative_price_rejects_whole_record():
    _, rejected = validate('billing-create', {
        'patientId': 1,
        'services': [{'name': 'A', 'price': 10}, {'name': 'B', 'price': -0.01}],
    })
    assert rejected.reason == Reason.INVALID_VALUE
    assert rejected.field == 'services'


def test_billing_empty_services_is_missing_field():
    _, rejected = validate('billing-create', {'patientId': 1, 'services': []})
    assert rejected.reason == Reason.MISSING_FIELD
    assert rejected.field == 'services'


def test_billing_non_numeric_price_is_invalid_format():
    _, rejected = validate('billing-create', {'patientId': 1, 'services': [{'name': 'A', 'price': 'ten'}]})
    assert rejected.reason == Reason.INVALID_FORMAT


def test_billing_boolean_price_is_not_a_number():
    _, rejected = validate('billing-create', {'patientId': 1, 'services': [{'name': 'A', 'price': True}]})
    assert rejected.reason == Reason.INVALID_FORMAT


def test_billing_missing_patient_is_missing_field():
    _, rejected = validate('billing-create', {'services': [{'name': 'A', 'price': 1}]})
    assert rejected.reason == Reason.MISSING_FIELD
    assert rejected.field == 'patientId'


def test_billing_negative_tax_is_invalid_value():
    _, rejected = validate('billing-create', {'patientId': 1, 'services': [{'name': 'A', 'price': 1}], 'tax': -1})
    assert rejected.reason == Reason.INVALID_VALUE
    assert rejected.field == 'tax'


def test_billing_non_integer_patient_id_cannot_reference_anything():
    fields, rejected = validate('billing-create', {'patientId': 'abc', 'services': [{'name': 'A', 'price': 1}]})
    assert rejected is None
    assert fields['patient_id'] is None


def test_appointment_create_normalizes_date_and_time():
    fields, rejected = validate('appointment-create', {
        'patientId': 1,
        'doctorId': 2,
        'date': '2024-06-01T08:00:00Z',
        'time': '9:05',
    })
    assert rejected is None
    assert fields['date'] == date(2024, 6, 1)
    assert fields['time'] == '09:05'
    assert fields['notes'] == ''


@pytest.mark.parametrize('missing', ['patientId', 'doctorId', 'date', 'time'])
def test_appointment_required_fields(missing):
    body = {'patientId': 1, 'doctorId': 2, 'date': '2024-06-01', 'time': '10:00'}
    del body[missing]
    _, rejected = validate('appointment-create', body)
    assert rejected.reason == Reason.MISSING_FIELD
    assert rejected.field == missing


def test_appointment_bad_time_is_invalid_format():
    _, rejected = validate('appointment-create', {'patientId': 1, 'doctorId': 2, 'date': '2024-06-01', 'time': '25:00'})
    assert rejected.reason == Reason.INVALID_FORMAT
    assert rejected.field == 'time'


def test_login_requires_both_fields():
    _, rejected = validate('login', {'username': 'admin'})
    assert rejected.reason == Reason.MISSING_FIELD
    assert rejected.field == 'password'


def test_user_create_defaults_role_and_rejects_unknown_roles():
    fields, rejected = validate('user-create', {'username': 'nurse', 'password': 'pw'})
    assert rejected is None
    assert fields['role'] == 'user'

    _, rejected = validate('user-create', {'username': 'nurse', 'password': 'pw', 'role': 'superuser'})
    assert rejected.reason == Reason.INVALID_VALUE
    assert rejected.field == 'role'


def test_parse_date_and_normalize_time_helpers():
    assert parse_date('2024-02-29') == date(2024, 2, 29)
    assert parse_date('2023-02-29') is None
    assert parse_date('') is None
    assert normalize_time('23:59') == '23:59'
    assert normalize_time('7:30') == '07:30'
    assert normalize_time('12:60') is None
    assert normalize_time('noon') is None

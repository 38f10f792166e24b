from datetime import date, datetime

from pms.models import Appointment
from pms.services import DataStore
from pms.services.scheduling import check_conflict, schedule_appointment
from pms.utils.rejections import Reason
from tests.factories import appointment_payload, make_appointment, make_patient

DOCTOR_A = 1
DOCTOR_B = 2
EXISTING = [{'doctor_id': DOCTOR_A, 'date': date(2024, 6, 1), 'time': '10:00'}]


def test_same_doctor_day_and_time_conflicts():
    rejected = check_conflict(DOCTOR_A, date(2024, 6, 1), '10:00', EXISTING)
    assert rejected.reason == Reason.CONFLICT
    assert rejected.field == 'time'


def test_different_time_is_free():
    assert check_conflict(DOCTOR_A, date(2024, 6, 1), '11:00', EXISTING) is None


def test_different_doctor_is_free():
    assert check_conflict(DOCTOR_B, date(2024, 6, 1), '10:00', EXISTING) is None


def test_different_day_is_free():
    assert check_conflict(DOCTOR_A, date(2024, 6, 2), '10:00', EXISTING) is None


def test_dates_compare_by_calendar_day():
    existing = [{'doctor_id': DOCTOR_A, 'date': datetime(2024, 6, 1, 23, 30), 'time': '10:00'}]
    assert check_conflict(DOCTOR_A, date(2024, 6, 1), '10:00', existing) is not None


def test_no_existing_appointments():
    assert check_conflict(DOCTOR_A, date(2024, 6, 1), '10:00', []) is None


def test_rows_from_the_database_are_checked(app):
    patient = make_patient()
    appointment = make_appointment(patient.id, DOCTOR_A)
    assert check_conflict(DOCTOR_A, date(2024, 6, 1), '10:00', [appointment]) is not None


class _BlindStore(DataStore):
    """Sees no existing appointments, as a concurrent request would."""

    def find_by(self, model, **filters):
        return []


def test_unique_constraint_closes_the_race(app):
    patient = make_patient()
    fields = {
        'patient_id': patient.id,
        'doctor_id': DOCTOR_A,
        'date': date(2024, 6, 1),
        'time': '10:00',
        'notes': '',
    }

    first, rejected = schedule_appointment(_BlindStore(), dict(fields))
    assert rejected is None
    assert first.id is not None

    second, rejected = schedule_appointment(_BlindStore(), dict(fields))
    assert second is None
    assert rejected.reason == Reason.CONFLICT
    assert Appointment.query.count() == 1


def test_schedule_via_api(harness):
    patient = make_patient()
    doctor_a = harness.user_ids['drsmith']
    doctor_b = harness.user_ids['drjones']

    resp = harness.post('/api/appointments', json=appointment_payload(patient.id, doctor_a))
    assert resp.status_code == 201
    data = resp.get_json()['data']
    assert data['doctorId'] == doctor_a
    assert data['date'] == '2024-06-01'
    assert data['time'] == '10:00'

    resp = harness.post('/api/appointments', json=appointment_payload(patient.id, doctor_a), who='assistant')
    assert resp.status_code == 400
    assert resp.get_json()['reason'] == 'conflict'

    resp = harness.post('/api/appointments', json=appointment_payload(patient.id, doctor_a, time='11:00'))
    assert resp.status_code == 201

    resp = harness.post('/api/appointments', json=appointment_payload(patient.id, doctor_b))
    assert resp.status_code == 201

    assert Appointment.query.count() == 3


def test_unpadded_time_is_the_same_slot(harness):
    patient = make_patient()
    doctor = harness.user_ids['drsmith']
    assert harness.post('/api/appointments', json=appointment_payload(patient.id, doctor, time='9:00')).status_code == 201

    resp = harness.post('/api/appointments', json=appointment_payload(patient.id, doctor, time='09:00'))
    assert resp.status_code == 400
    assert resp.get_json()['reason'] == 'conflict'

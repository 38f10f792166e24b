import pytest

from pms.models import AuditLog
from pms.utils.audit import log_audit
from tests.factories import appointment_payload, billing_payload, patient_payload


def test_register_schedule_bill_delete(harness):
    doctor = harness.user_ids['drsmith']

    resp = harness.post('/api/patients', json=patient_payload(3), who='assistant')
    assert resp.status_code == 201
    patient_id = resp.get_json()['data']['id']

    resp = harness.post('/api/appointments', json=appointment_payload(patient_id, doctor, time='14:30'), who='assistant')
    assert resp.status_code == 201
    appointment_id = resp.get_json()['data']['id']

    resp = harness.post(
        '/api/billing',
        json=billing_payload(patient_id, prices=(120.5, 30), tax=7.5, discount=10),
        who='assistant',
    )
    assert resp.status_code == 201
    billing_id = resp.get_json()['data']['id']
    assert resp.get_json()['total'] == 148.0

    assert harness.delete(f'/api/patients/{patient_id}', who='assistant').status_code == 200
    assert harness.get(f'/api/patients/{patient_id}', who='user').status_code == 404

    # History outlives the patient
    assert harness.get(f'/api/appointments/{appointment_id}', who='user').status_code == 200
    assert harness.get(f'/api/billing/{billing_id}', who='user').status_code == 200

    actions = {(e.entity_type, e.action) for e in AuditLog.query.all()}
    assert actions == {
        ('patient', 'create'),
        ('appointment', 'create'),
        ('billing', 'create'),
        ('patient', 'delete'),
    }


def test_health_endpoints(client):
    assert client.get('/health').get_json()['status'] == 'healthy'
    resp = client.get('/health/ready')
    assert resp.status_code == 200
    assert resp.get_json()['database'] == 'connected'
    assert client.get('/health/live').status_code == 200


def test_unknown_endpoint_is_json_404(client):
    resp = client.get('/api/nothing-here')
    assert resp.status_code == 404
    assert resp.get_json()['success'] is False


def test_api_answers_cors_preflight(client):
    resp = client.options(
        '/api/patients',
        headers={'Origin': 'http://localhost:3000', 'Access-Control-Request-Method': 'POST'},
    )
    assert resp.headers.get('Access-Control-Allow-Origin') in ('*', 'http://localhost:3000')


def test_unknown_audit_event_is_a_programming_error(app):
    with pytest.raises(ValueError):
        log_audit('prescription', 'create')

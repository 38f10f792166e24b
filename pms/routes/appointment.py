import logging

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from pms.models import Appointment, Patient, User
from pms.services import DataStore, validate, require_existing, schedule_appointment, parse_date
from pms.utils.audit import log_audit
from pms.utils.decorators import require_role
from pms.utils.pagination import get_pagination, pagination_meta
from pms.utils.rejections import invalid_format

logger = logging.getLogger(__name__)

appointment_bp = Blueprint('appointment', __name__, url_prefix='/api/appointments')


@appointment_bp.route('', methods=['GET'])
@jwt_required()
def list_appointments():
    """
    List appointments with filters and pagination.
    Query params:
        date: YYYY-MM-DD (optional)
        doctor_id: Filter by doctor user ID (optional)
        patient_id: Filter by patient ID (optional)
        page, limit: Pagination
    """
    page, limit = get_pagination()
    filter_date = request.args.get('date', type=str)
    doctor_id = request.args.get('doctor_id', type=int)
    patient_id = request.args.get('patient_id', type=int)

    query = Appointment.query

    if filter_date:
        filter_date_obj = parse_date(filter_date)
        if filter_date_obj is None:
            return invalid_format('date', 'Invalid date format. Use YYYY-MM-DD').to_response()
        query = query.filter(Appointment.date == filter_date_obj)

    if doctor_id:
        query = query.filter(Appointment.doctor_id == doctor_id)
    if patient_id:
        query = query.filter(Appointment.patient_id == patient_id)

    appointments = query.order_by(
        Appointment.date.desc(),
        Appointment.time.asc()
    ).paginate(page=page, per_page=limit, error_out=False)

    return jsonify({
        'success': True,
        'data': [apt.to_dict() for apt in appointments.items],
        'pagination': pagination_meta(appointments, page, limit)
    }), 200


@appointment_bp.route('/<int:appointment_id>', methods=['GET'])
@jwt_required()
def get_appointment(appointment_id):
    """Get single appointment by ID"""
    appointment, rejected = require_existing(DataStore(), Appointment, appointment_id, 'Appointment')
    if rejected:
        return rejected.to_response()

    return jsonify({
        'success': True,
        'data': appointment.to_dict()
    }), 200


@appointment_bp.route('', methods=['POST'])
@jwt_required()
@require_role('admin', 'assistant')
def create_appointment():
    """
    Schedule an appointment
    Body: { patientId, doctorId, date, time, notes }
    Access: admin, assistant
    """
    fields, rejected = validate('appointment-create', request.get_json(silent=True))
    if rejected:
        return rejected.to_response()

    store = DataStore()
    _, rejected = require_existing(store, Patient, fields['patient_id'], 'Patient', 'patientId', deleted_at=None)
    if rejected:
        return rejected.to_response()
    _, rejected = require_existing(store, User, fields['doctor_id'], 'Doctor', 'doctorId')
    if rejected:
        return rejected.to_response()

    try:
        appointment, rejected = schedule_appointment(store, fields)
    except Exception as e:
        store.rollback()
        logger.error("Failed to create appointment: %s", e, exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Failed to create appointment'
        }), 500
    if rejected:
        return rejected.to_response()

    log_audit(
        'appointment', 'create',
        actor_from_request=True,
        entity_id=appointment.id,
        details={'patient_id': appointment.patient_id, 'doctor_id': appointment.doctor_id,
                 'date': appointment.date.isoformat(), 'time': appointment.time}
    )

    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': 'Appointment created successfully'
    }), 201

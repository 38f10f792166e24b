import logging
from datetime import datetime

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from pms.extensions import db
from pms.models import Patient
from pms.services import DataStore, validate, require_existing
from pms.utils.audit import log_audit
from pms.utils.decorators import require_role
from pms.utils.pagination import get_pagination, pagination_meta
from pms.utils.rejections import invalid_value

logger = logging.getLogger(__name__)

patient_bp = Blueprint('patient', __name__, url_prefix='/api/patients')

SORT_ORDERS = {
    'name_asc': Patient.name.asc(),
    'name_desc': Patient.name.desc(),
    'dob_asc': Patient.dob.asc(),
    'dob_desc': Patient.dob.desc(),
}


def _contains(column, text):
    """Case-insensitive substring match; % and _ in the text are literal"""
    escaped = text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return column.ilike(f'%{escaped}%', escape='\\')


def _find_patient(patient_id):
    return require_existing(DataStore(), Patient, patient_id, 'Patient', deleted_at=None)


@patient_bp.route('', methods=['GET'])
@jwt_required()
def list_patients():
    """
    List patients with filters, sorting and pagination
    Query params:
        name: case-insensitive substring of the name
        condition: case-insensitive substring of the medical history
        sort: name_asc | name_desc | dob_asc | dob_desc (default: newest first)
        page, limit: Pagination
    """
    page, limit = get_pagination()
    name = request.args.get('name', '', type=str).strip()
    condition = request.args.get('condition', '', type=str).strip()
    sort = request.args.get('sort', '', type=str).strip()

    if sort and sort not in SORT_ORDERS:
        return invalid_value('sort', f'Unknown sort order. Use one of: {", ".join(SORT_ORDERS)}').to_response()

    query = Patient.active()
    if name:
        query = query.filter(_contains(Patient.name, name))
    if condition:
        query = query.filter(_contains(Patient.medical_history, condition))

    if sort:
        query = query.order_by(SORT_ORDERS[sort], Patient.id.asc())
    else:
        query = query.order_by(Patient.created_at.desc(), Patient.id.desc())

    patients = query.paginate(page=page, per_page=limit, error_out=False)

    return jsonify({
        'success': True,
        'data': [p.to_dict() for p in patients.items],
        'pagination': pagination_meta(patients, page, limit)
    }), 200


@patient_bp.route('/<int:patient_id>', methods=['GET'])
@jwt_required()
def get_patient(patient_id):
    """Get single patient by ID"""
    patient, rejected = _find_patient(patient_id)
    if rejected:
        return rejected.to_response()

    return jsonify({
        'success': True,
        'data': patient.to_dict()
    }), 200


@patient_bp.route('', methods=['POST'])
@jwt_required()
@require_role('admin', 'assistant')
def create_patient():
    """
    Register a new patient
    Body: { name, dob, medicalHistory }
    Access: admin, assistant
    """
    fields, rejected = validate('patient-create', request.get_json(silent=True))
    if rejected:
        return rejected.to_response()

    store = DataStore()
    try:
        patient = store.create(Patient, **fields)
        store.commit()
    except Exception as e:
        store.rollback()
        logger.error("Failed to create patient: %s", e, exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Failed to create patient'
        }), 500

    log_audit('patient', 'create', actor_from_request=True, entity_id=patient.id, details={'name': patient.name})

    return jsonify({
        'success': True,
        'data': patient.to_dict(),
        'message': 'Patient created successfully'
    }), 201


@patient_bp.route('/<int:patient_id>', methods=['PUT'])
@jwt_required()
@require_role('admin', 'assistant')
def update_patient(patient_id):
    """
    Partial update: name and/or medicalHistory
    Access: admin, assistant
    """
    patient, rejected = _find_patient(patient_id)
    if rejected:
        return rejected.to_response()

    fields, rejected = validate('patient-update', request.get_json(silent=True))
    if rejected:
        return rejected.to_response()

    store = DataStore()
    try:
        store.update(patient, **fields)
        store.commit()
    except Exception as e:
        store.rollback()
        logger.error("Failed to update patient %s: %s", patient_id, e, exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Failed to update patient'
        }), 500

    log_audit('patient', 'update', actor_from_request=True, entity_id=patient.id, details={'fields': sorted(fields)})

    return jsonify({
        'success': True,
        'data': patient.to_dict(),
        'message': 'Patient updated successfully'
    }), 200


@patient_bp.route('/<int:patient_id>', methods=['DELETE'])
@jwt_required()
@require_role('admin', 'assistant')
def delete_patient(patient_id):
    """
    Soft-delete patient (no hard deletion of medical data).
    Access: admin, assistant
    """
    patient, rejected = _find_patient(patient_id)
    if rejected:
        return rejected.to_response()

    try:
        patient.deleted_at = datetime.utcnow()
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to delete patient %s: %s", patient_id, e, exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Failed to delete patient'
        }), 500

    log_audit('patient', 'delete', actor_from_request=True, entity_id=patient_id, details={'name': patient.name})

    return jsonify({
        'success': True,
        'message': f'Patient {patient_id} deleted successfully'
    }), 200

"""
Billing API Routes
Create and read billing records; totals are computed server-side.
"""
import logging

from flask import Blueprint, request, jsonify, g
from flask_jwt_extended import jwt_required

from pms.models import BillingRecord, Patient
from pms.services import DataStore, validate, require_existing, create_billing_record
from pms.utils.audit import log_audit
from pms.utils.decorators import require_role
from pms.utils.pagination import get_pagination, pagination_meta

logger = logging.getLogger(__name__)

billing_bp = Blueprint("billing", __name__, url_prefix="/api/billing")


@billing_bp.route("", methods=["POST"])
@jwt_required()
@require_role("admin", "assistant")
def create_billing():
    """
    Create a billing record

    Body:
        patientId: Patient ID (required)
        services: [{name, price}, ...] (required, non-empty, prices >= 0)
        tax: absolute amount added to the total (optional)
        discount: absolute amount subtracted from the total (optional)

    Returns:
        Billing record including the computed total
    """
    fields, rejected = validate("billing-create", request.get_json(silent=True))
    if rejected:
        return rejected.to_response()

    store = DataStore()
    _, rejected = require_existing(store, Patient, fields["patient_id"], "Patient", "patientId", deleted_at=None)
    if rejected:
        return rejected.to_response()

    try:
        record = create_billing_record(store, fields, created_by=g.current_user.id)
        store.commit()
    except Exception as e:
        store.rollback()
        logger.error("Failed to create billing record: %s", e, exc_info=True)
        return jsonify({"success": False, "error": "Failed to create billing record"}), 500

    log_audit(
        "billing",
        "create",
        actor_from_request=True,
        entity_id=record.id,
        details={"patient_id": record.patient_id, "total": record.total},
    )

    return jsonify({
        "success": True,
        "data": record.to_dict(),
        "total": float(record.total),
        "message": "Billing record created successfully",
    }), 201


@billing_bp.route("", methods=["GET"])
@jwt_required()
def list_billing():
    """
    List billing records, newest first
    Query params: patient_id (optional), page, limit
    """
    page, limit = get_pagination()
    patient_id = request.args.get("patient_id", type=int)

    query = BillingRecord.query
    if patient_id:
        query = query.filter(BillingRecord.patient_id == patient_id)

    records = query.order_by(BillingRecord.created_at.desc(), BillingRecord.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )

    return jsonify({
        "success": True,
        "data": [r.to_dict() for r in records.items],
        "pagination": pagination_meta(records, page, limit),
    }), 200


@billing_bp.route("/<int:record_id>", methods=["GET"])
@jwt_required()
def get_billing(record_id):
    """Get a single billing record"""
    record, rejected = require_existing(DataStore(), BillingRecord, record_id, "Billing record")
    if rejected:
        return rejected.to_response()

    return jsonify({"success": True, "data": record.to_dict()}), 200

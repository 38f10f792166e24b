import logging
from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import create_access_token, jwt_required

from pms.extensions import db
from pms.models import User
from pms.services import DataStore, validate, guard_admin_removal
from pms.utils.audit import log_audit
from pms.utils.decorators import get_current_user, require_role
from pms.utils.rejections import INVALID_CREDENTIALS, conflict, not_found

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _resolve_user(user_ref):
    """A user reference is either a numeric id or a username."""
    if user_ref.isdigit():
        return db.session.get(User, int(user_ref))
    return User.query.filter_by(username=user_ref).first()


@users_bp.route("/login", methods=["POST"])
def login():
    """Login endpoint - authenticates a user and returns a JWT access token"""
    fields, rejected = validate("login", request.get_json(silent=True))
    if rejected:
        return rejected.to_response()

    user = User.query.filter_by(username=fields["username"]).first()

    # Same answer whether the username or the password was wrong
    if not user or not user.check_password(fields["password"]):
        logger.info("Failed login for username %r", fields["username"])
        return INVALID_CREDENTIALS.to_response()

    # Update login tracking
    user.last_login = datetime.utcnow()
    user.login_count = (user.login_count or 0) + 1
    db.session.commit()

    # Identity must be a string for the JWT "sub" claim
    access_token = create_access_token(
        identity=str(user.id),
        additional_claims={"username": user.username, "role": user.role},
        fresh=True,
    )
    expires = current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]

    return jsonify({
        "success": True,
        "data": user.to_dict(),
        "token": access_token,
        "token_type": "bearer",
        "expires_in": int(expires.total_seconds()) if expires else None,
    }), 200


@users_bp.route("/me", methods=["GET"])
@jwt_required()
def get_me():
    """Get the currently logged-in user"""
    user = get_current_user()
    if not user:
        return not_found("User").to_response()
    return jsonify({"success": True, "data": user.to_dict()}), 200


@users_bp.route("/register", methods=["POST"])
@jwt_required()
@require_role("admin")
def register():
    """
    Create a user account.
    Body: { username, password, role }  (role: admin | assistant | user, default user)
    Access: admin
    """
    fields, rejected = validate("user-create", request.get_json(silent=True))
    if rejected:
        return rejected.to_response()

    store = DataStore()
    if store.first_by(User, username=fields["username"]):
        return conflict("Username already exists", "username").to_response()

    try:
        user = User(username=fields["username"], role=fields["role"])
        user.set_password(fields["password"])
        store.add(user)
        store.commit()
    except Exception as e:
        store.rollback()
        logger.error("Failed to register user: %s", e, exc_info=True)
        return jsonify({"success": False, "error": "Failed to create user"}), 500

    log_audit("user", "create", actor_from_request=True, entity_id=user.id, details={"role": user.role})

    return jsonify({"success": True, "data": user.to_dict()}), 201


@users_bp.route("", methods=["GET"])
@jwt_required()
@require_role("admin")
def list_users():
    """List all users. Access: admin"""
    users = User.query.order_by(User.id.asc()).all()
    return jsonify({"success": True, "data": [u.to_dict() for u in users]}), 200


@users_bp.route("/<user_ref>", methods=["GET"])
@jwt_required()
@require_role("admin")
def get_user(user_ref):
    """Get user by id or username. Access: admin"""
    user = _resolve_user(user_ref)
    if not user:
        return not_found("User").to_response()
    return jsonify({"success": True, "data": user.to_dict()}), 200


@users_bp.route("/<user_ref>", methods=["PUT"])
@jwt_required()
@require_role("admin")
def update_user(user_ref):
    """
    Change a user's role and/or password.
    Body: { role?, password? }
    Access: admin
    """
    user = _resolve_user(user_ref)
    if not user:
        return not_found("User").to_response()

    fields, rejected = validate("user-update", request.get_json(silent=True))
    if rejected:
        return rejected.to_response()

    store = DataStore()
    if "role" in fields:
        rejected = guard_admin_removal(store, user, new_role=fields["role"])
        if rejected:
            return rejected.to_response()

    try:
        if "role" in fields:
            user.role = fields["role"]
        if "password" in fields:
            user.set_password(fields["password"])
        store.commit()
    except Exception as e:
        store.rollback()
        logger.error("Failed to update user %s: %s", user_ref, e, exc_info=True)
        return jsonify({"success": False, "error": "Failed to update user"}), 500

    log_audit("user", "update", actor_from_request=True, entity_id=user.id, details={"fields": sorted(fields)})

    return jsonify({"success": True, "data": user.to_dict()}), 200


@users_bp.route("/<user_ref>", methods=["DELETE"])
@jwt_required()
@require_role("admin")
def delete_user(user_ref):
    """
    Delete a user account. The last remaining admin cannot be deleted,
    not even by themself.
    Access: admin
    """
    user = _resolve_user(user_ref)
    if not user:
        return not_found("User").to_response()

    store = DataStore()
    rejected = guard_admin_removal(store, user)
    if rejected:
        return rejected.to_response()

    if user.appointments.count():
        return conflict("User has scheduled appointments and cannot be deleted").to_response()

    deleted_id, deleted_username = user.id, user.username
    acting_id = g.current_user.id
    try:
        store.delete(user)
        store.commit()
    except Exception as e:
        store.rollback()
        logger.error("Failed to delete user %s: %s", user_ref, e, exc_info=True)
        return jsonify({"success": False, "error": "Failed to delete user"}), 500

    log_audit(
        "user",
        "delete",
        user_id=None if acting_id == deleted_id else acting_id,
        entity_id=deleted_id,
        details={"username": deleted_username},
    )

    return jsonify({"success": True, "message": f"User {deleted_username} deleted successfully"}), 200

from flask import request, jsonify
from werkzeug.security import check_password_hash
from flask_jwt_extended import create_access_token
import structlog

from . import bp
from ..model import User
from ..utils.api import api_ok, api_error
from ..utils.decorators import current_user, signed_in

logger = structlog.get_logger()


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        return jsonify(api_error("Email and password are required")), 400

    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, password):
        logger.info("auth.login_failed", email=email)
        return jsonify(api_error("Invalid email or password")), 401

    access_token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
    logger.info("auth.login", user_id=user.id, role=user.role)
    return jsonify(api_ok(
        "You've logged in successfully",
        data={"user": user.as_dict(), "user_logged_in": True, "token": access_token},
    )), 200


@bp.get("/me")
@signed_in
def me():
    return jsonify(api_ok("OK", data={"user": current_user().as_dict()})), 200

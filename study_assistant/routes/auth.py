from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from study_assistant.errors import AppError, ValidationError
from study_assistant.extensions import db
from study_assistant.models.user import User
from study_assistant.routes.notes import text_field

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

MIN_PASSWORD_LENGTH = 6


def _user_payload(user):
    return {"id": user.id, "username": user.username}


@auth_bp.route("/register", methods=["POST"])
def register():
    """Create an account and start a session for it."""
    data = request.get_json(silent=True) or {}
    username = text_field(data, "username")
    email = text_field(data, "email").lower()
    password = data.get("password") or ""

    if not username or not email or not password:
        raise ValidationError("Username, email and password are required")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if User.query.filter_by(username=username).first():
        raise AppError("Username already taken", status_code=409)
    if User.query.filter_by(email=email).first():
        raise AppError("Email already registered", status_code=409)

    user = User(username=username, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"Registered user {user.id}")

    login_user(user)
    return jsonify({"message": "Registration successful", "user": _user_payload(user)}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    username = text_field(data, "username")
    password = data.get("password")

    user = User.query.filter_by(username=username).first()
    if not user or not isinstance(password, str) or not user.check_password(password):
        return jsonify({"error": "Invalid username or password"}), 401

    login_user(user)
    return jsonify({"message": "Login successful", "user": _user_payload(user)})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    user = _user_payload(current_user)
    user.update(email=current_user.email, note_count=current_user.notes.count())
    return jsonify({"user": user})

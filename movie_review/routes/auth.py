from datetime import datetime

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..extensions import db
from ..models.user import User

auth_bp = Blueprint("auth", __name__)


def _credentials():
    data = request.get_json(silent=True) or request.form
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    remember = str(data.get("remember", "")).lower() in {"1", "true", "on", "yes"}
    return username, password, remember


def _username_taken(username, exclude_id=None):
    query = User.query.filter(func.lower(User.username) == username.lower())
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _clean_username(value):
    username = (value or "").strip() if isinstance(value, str) else ""
    if not username or len(username) > 50:
        raise ValidationError("Username must be 1 to 50 characters")
    return username


@auth_bp.post("/register")
def register():
    username, password, remember = _credentials()
    username = _clean_username(username)
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")
    if _username_taken(username):
        raise ValidationError("Username already taken")

    user = User(username=username, last_login=datetime.utcnow())
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Username already taken")

    login_user(user, remember=remember)
    current_app.logger.info(f"User '{user.username}' (ID: {user.id}) registered.")
    return jsonify(user.to_dict()), 201


@auth_bp.post("/login")
def login():
    username, password, remember = _credentials()

    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        return jsonify({"message": "Invalid credentials"}), 401

    user.last_login = datetime.utcnow()
    db.session.commit()
    login_user(user, remember=remember)
    return jsonify(user.to_dict())


@auth_bp.post("/logout")
def logout():
    if current_user.is_authenticated:
        logout_user()
    return ("", 204)


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(current_user.to_dict())


@auth_bp.put("/me")
@login_required
def rename():
    """
    Change the display name. Reviews already written keep their snapshot name.
    """
    data = request.get_json(silent=True) or {}
    username = _clean_username(data.get("username"))
    if _username_taken(username, exclude_id=current_user.id):
        raise ValidationError("Username already taken")

    current_user.username = username
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Username already taken")
    return jsonify(current_user.to_dict())

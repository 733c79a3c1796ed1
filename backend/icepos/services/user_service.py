# Overview: Staff user management.

from __future__ import annotations

from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_CASHIER
from ..validation import ValidationError, NotFoundError, BusinessRuleError, require_text


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def list_users(include_inactive: bool = True) -> list[User]:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.name.asc()).all()


def create_user(data: dict) -> User:
    role = data.get("role") or ROLE_CASHIER
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}. Must be one of {list(ROLES)}")
    user = User(name=require_text(data, "name", "ชื่อผู้ใช้"), role=role)
    db.session.add(user)
    db.session.commit()
    return user


def update_user(user_id: int, data: dict, *, acting_user_id: int | None = None) -> User:
    user = get_user(user_id)
    if "name" in data:
        user.name = require_text(data, "name", "ชื่อผู้ใช้")
    if "role" in data:
        if data["role"] not in ROLES:
            raise ValidationError(f"Invalid role: {data['role']}. Must be one of {list(ROLES)}")
        user.role = data["role"]
    if "is_active" in data:
        if not data["is_active"]:
            return deactivate_user(user_id, acting_user_id=acting_user_id)
        user.is_active = True
    db.session.commit()
    return user


def deactivate_user(user_id: int, *, acting_user_id: int | None = None) -> User:
    """
    Raises:
        BusinessRuleError: a user tries to deactivate their own account
    """
    if acting_user_id is not None and acting_user_id == user_id:
        raise BusinessRuleError("ไม่สามารถปิดการใช้งานบัญชีของตัวเองได้")
    user = get_user(user_id)
    user.is_active = False
    db.session.commit()
    return user

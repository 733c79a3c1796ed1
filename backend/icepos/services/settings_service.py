# Overview: Key/value application settings persisted in app_settings.

from __future__ import annotations

from typing import Any

from ..extensions import db
from ..models import AppSetting
from ..validation import ValidationError


KEY_LAST_BACKUP_AT = "last_backup_at"
KEY_BACKUP_REMINDER_DISMISSED_AT = "backup_reminder_dismissed_at"
KEY_PRINTER = "printer"


def get_setting(key: str, default: Any = None) -> Any:
    row = db.session.get(AppSetting, key)
    if row is None or row.value_json is None:
        return default
    return row.value_json


def set_setting(key: str, value: Any) -> AppSetting:
    if not key or not str(key).strip():
        raise ValidationError("key is required")
    row = db.session.get(AppSetting, key)
    if row is None:
        row = AppSetting(key=key)
        db.session.add(row)
    row.value_json = value
    db.session.commit()
    return row


def all_settings() -> dict:
    return {row.key: row.value_json for row in db.session.query(AppSetting).order_by(AppSetting.key).all()}

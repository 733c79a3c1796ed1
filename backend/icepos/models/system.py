from __future__ import annotations

from ..extensions import db
from icepos.time_utils import to_utc_z


QUEUE_STATUS_PENDING = "pending"
QUEUE_STATUS_DONE = "done"
QUEUE_STATUS_FAILED = "failed"


class QueuedOperation(db.Model):
    """
    A write captured while the register was offline, replayed later in FIFO
    order (by id). Operations are reapplied as recorded; there is no conflict
    check against rows changed in the meantime.
    """
    __tablename__ = "queued_operations"
    __table_args__ = (
        db.Index("ix_queued_operations_status", "status", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False)
    payload = db.Column(db.JSON, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=QUEUE_STATUS_PENDING)
    retries = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "payload": self.payload,
            "status": self.status,
            "retries": self.retries,
            "last_error": self.last_error,
            "created_at": to_utc_z(self.created_at),
            "processed_at": to_utc_z(self.processed_at),
        }


class AppSetting(db.Model):
    """Small key/value store (last backup time, last user, view preferences)."""
    __tablename__ = "app_settings"

    key = db.Column(db.String(128), primary_key=True)
    value_json = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value_json,
            "updated_at": to_utc_z(self.updated_at),
        }

from __future__ import annotations

from ..extensions import db
from icepos.time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_CASHIER = "cashier"

ROLES = (ROLE_ADMIN, ROLE_CASHIER)


class User(db.Model):
    """
    Shop staff. Users are deactivated, never deleted, so stock logs and sales
    keep a valid actor reference.
    """
    __tablename__ = "users"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_CASHIER)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

from __future__ import annotations

from ..extensions import db
from icepos.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data for loyalty and credit sales.

    Denormalized aggregates (points, total_spent_cents, visit_count) are
    updated when a sale is completed.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True, index=True)

    points = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    visit_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} points={self.points}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "points": self.points,
            "total_spent_cents": self.total_spent_cents,
            "visit_count": self.visit_count,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

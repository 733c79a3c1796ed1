# Overview: Customer CRUD and lookup.

from __future__ import annotations

from ..extensions import db
from ..models import Customer
from ..validation import NotFoundError, require_text, optional_text


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def list_customers(search: str | None = None, limit: int | None = 200) -> list[Customer]:
    query = db.session.query(Customer)
    if search and search.strip():
        term = search.strip()
        query = query.filter(Customer.name.ilike(f"%{term}%") | Customer.phone.ilike(f"%{term}%"))
    query = query.order_by(Customer.name.asc())
    if limit:
        query = query.limit(limit)
    return query.all()


def create_customer(data: dict) -> Customer:
    customer = Customer(
        name=require_text(data, "name", "ชื่อลูกค้า"),
        phone=optional_text(data, "phone"),
    )
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer_id: int, data: dict) -> Customer:
    """Points and spend totals are maintained by checkout, not edited here."""
    customer = get_customer(customer_id)
    if "name" in data:
        customer.name = require_text(data, "name", "ชื่อลูกค้า")
    if "phone" in data:
        customer.phone = optional_text(data, "phone")
    db.session.commit()
    return customer

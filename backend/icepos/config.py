# backend/icepos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/icepos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///icepos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SHOP_NAME = os.environ.get("SHOP_NAME", "ร้านน้ำแข็ง แก๊ส น้ำดื่ม")
    SHOP_ADDRESS = os.environ.get("SHOP_ADDRESS", "")
    SHOP_PHONE = os.environ.get("SHOP_PHONE", "")

    # Outright cylinder price when a gas product has no explicit outright price:
    # unit price + deposit + premium (500 baht)
    OUTRIGHT_PREMIUM_CENTS = int(os.environ.get("OUTRIGHT_PREMIUM_CENTS", "50000"))

    # Expected daily melt for ice products without their own rate
    DEFAULT_MELT_RATE_PERCENT = float(os.environ.get("DEFAULT_MELT_RATE_PERCENT", "5"))

    DEFAULT_LOW_STOCK_THRESHOLD = 5

    BACKUP_VERSION = "2.0"
    BACKUP_REMINDER_DAYS = int(os.environ.get("BACKUP_REMINDER_DAYS", "7"))

    TOP_PRODUCTS_LIMIT = 10
    OFFLINE_QUEUE_MAX_RETRIES = 3

    # Receipts show local shop time (Asia/Bangkok)
    RECEIPT_UTC_OFFSET_HOURS = int(os.environ.get("RECEIPT_UTC_OFFSET_HOURS", "7"))

# backend/icepos/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate



def create_app(config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.discounts import discounts_bp
    from .routes.sales import sales_bp
    from .routes.cylinders import cylinders_bp  # Gas exchange/deposit/return
    from .routes.stock import stock_bp  # Receipts, adjustments, daily counts
    from .routes.payments import payments_bp
    from .routes.reports import reports_bp
    from .routes.backup import backup_bp
    from .routes.users import users_bp
    from .routes.queue import queue_bp  # Offline replay

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(cylinders_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(backup_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(queue_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-User-Id"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

# backend/stockroom/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.stock import stock_bp
    from .routes.vendors import vendors_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.po_templates import po_templates_bp
    from .routes.transfers import transfers_bp
    from .routes.counts import counts_bp
    from .routes.barcodes import barcodes_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(vendors_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(po_templates_bp)
    app.register_blueprint(transfers_bp)
    app.register_blueprint(counts_bp)
    app.register_blueprint(barcodes_bp)

    from .routes import register_error_handlers
    register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

# backend/shopledger/__init__.py
from __future__ import annotations

import logging

from flask import Flask, jsonify

from .config import Config
from .errors import LedgerError
from .extensions import db, deferred, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    deferred.init_app(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.accounts import accounts_bp
    from .routes.settings import settings_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.suppliers import suppliers_bp
    from .routes.sales import sales_bp
    from .routes.purchases import purchases_bp
    from .routes.returns import returns_bp
    from .routes.quotations import quotations_bp
    from .routes.ledger import ledger_bp
    from .routes.backups import backups_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(accounts_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(returns_bp)
    app.register_blueprint(quotations_bp)
    app.register_blueprint(ledger_bp)
    app.register_blueprint(backups_bp)

    def handle_ledger_error(exc: LedgerError):
        if exc.status_code >= 500:
            app.logger.error("%s failed at %s: %s", exc.operation, exc.path, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    app.register_error_handler(LedgerError, handle_ledger_error)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

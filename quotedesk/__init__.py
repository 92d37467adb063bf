"""
quotedesk/__init__.py

Flask application factory for QuoteDesk, a multi-tenant wholesale quoting and purchasing service.

Architecture:
- JSON blueprints for auth, catalog, partners, quotes, purchase orders and administration.
- Business operations live in quotedesk.services and receive the SQLAlchemy session and the
  resolved organization id explicitly.
- One request = one transaction. Routes commit; services only flush.
- Access control is enforced server-side by quotedesk.security on every request.
"""

from __future__ import annotations

import click
from flask import Flask, jsonify
from flask_login import current_user

from .errors import register_error_handlers
from .extensions import csrf, db, login_manager, migrate
from .models import Role, User, UserStatus

# Blueprint imports kept inside create_app() where possible to reduce import side effects.


def create_app(config_object: str | object = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(session_id: str) -> User | None:
        """Load user for Flask-Login ("<id>:<session version>")."""
        from .services.auth import load_session_user

        return load_session_user(db.session, session_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "unauthenticated", "message": "Please log in to access this resource."}), 401

    register_error_handlers(app)

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.catalog import catalog_bp
    from .blueprints.partners import partners_bp
    from .blueprints.quotes import quotes_bp
    from .blueprints.purchase_orders import purchase_orders_bp
    from .blueprints.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(partners_bp)
    app.register_blueprint(quotes_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(admin_bp)

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("create-super-admin")
    @click.argument("email")
    @click.argument("password")
    def create_super_admin_command(email: str, password: str):
        """Create (or promote) a super admin account."""
        from .services.auth import get_user_by_email

        if len(password) < app.config["MIN_PASSWORD_LENGTH"]:
            raise click.BadParameter(
                f"must be at least {app.config['MIN_PASSWORD_LENGTH']} characters.", param_hint="PASSWORD"
            )

        user = get_user_by_email(db.session, email)
        if user is None:
            user = User(email=email.strip().lower(), login_method="email")
            db.session.add(user)
        user.role = Role.super_admin
        user.status = UserStatus.active
        user.set_password(password)
        user.rotate_session()
        db.session.commit()
        click.echo(f"Super admin ready: {user.email}")

    @app.cli.command("create-organization")
    @click.argument("name")
    def create_organization_command(name: str):
        """Create an organization with an active subscription."""
        from .services.admin import create_organization

        organization = create_organization(db.session, name)
        db.session.commit()
        click.echo(f"Organization created: {organization.id} {organization.name}")

    # ----------------------------------------------------------------------
    # Home
    # ----------------------------------------------------------------------
    @app.route("/")
    def index():
        return jsonify(
            {
                "app": app.config["APP_NAME"],
                "authenticated": bool(current_user.is_authenticated),
            }
        )

    return app

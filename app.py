"""Flask application factory for the citizen complaints API."""
import os
from typing import Optional

import click
from flask import Flask, g, jsonify, request
from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

from utils.errors import ServiceError, Unauthenticated
from utils.logger import init_logging
from utils.security import apply_cors_headers, apply_security_headers
from utils.tokens import bearer_token, decode_token
from extensions import db, migrate, login_manager


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def service_error(error: ServiceError):
        if error.status_code >= 500:
            app.logger.error(
                "Service error",
                extra={"path": request.path, "method": request.method, "kind": type(error).__name__},
            )
        else:
            app.logger.warning(
                "%s %s",
                error.status_code,
                type(error).__name__,
                extra={"path": request.path, "method": request.method, "detail": error.message},
            )
        return jsonify(error.to_payload()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        app.logger.warning(
            "%s %s",
            error.code,
            error.name,
            extra={"path": request.path, "method": request.method},
        )
        return jsonify({"success": False, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        app.logger.exception("500 Internal Server Error")
        return jsonify({"success": False, "message": "Internal server error"}), 500


def ensure_default_authority(app: Flask) -> None:
    """Ensure the configured bootstrap authority exists and holds the authority role."""
    from models import User, UserRole  # Local import to avoid circular dependency

    email = (app.config.get("DEFAULT_AUTHORITY_EMAIL") or "").lower().strip()
    password = app.config.get("DEFAULT_AUTHORITY_PASSWORD") or ""
    if not email or not password:
        return

    user = User.query.filter_by(email=email).first()
    if user:
        if user.role != UserRole.AUTHORITY.value:
            user.role = UserRole.AUTHORITY.value
            db.session.commit()
        return

    user = User(name="System Authority", email=email, role=UserRole.AUTHORITY.value)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    app.logger.info("Default authority created", extra={"email": email})


def ensure_database_exists(database_uri: str) -> None:
    """Create the target database if it does not exist (PostgreSQL + SQLite support)."""
    url = make_url(database_uri)

    if url.drivername.startswith("sqlite"):
        # For SQLite just make sure the parent directory exists.
        if url.database and url.database != ":memory:":
            os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
        return

    if url.drivername.startswith("postgres"):
        db_name = url.database
        admin_url = url.set(database=os.getenv("POSTGRES_DB_ADMIN", "postgres"))
        engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")
        try:
            with engine.connect() as conn:
                exists = conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": db_name}
                ).scalar()
                if not exists:
                    conn.execute(text(f'CREATE DATABASE "{db_name}"'))
        except OperationalError:
            # If we cannot connect/create, let the normal app startup fail loudly later.
            pass
        finally:
            engine.dispose()


def register_auth(app: Flask) -> None:
    login_manager.init_app(app)
    # Stateless bearer API: nothing is kept in the session cookie.
    login_manager.session_protection = None

    @login_manager.request_loader
    def load_user_from_request(req):
        from models import User  # Local import to avoid circular dependency

        try:
            token = bearer_token(req.headers.get("Authorization"))
            if not token:
                return None
            claims = decode_token(token)
        except Unauthenticated as exc:
            g.auth_error = exc.message
            return None
        return db.session.get(User, str(claims["sub"]))

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated(g.get("auth_error") or "Access denied. Token not provided.")


def register_cli(app: Flask) -> None:
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created.")

    def _create_user(name: str, email: str, password: str, role) -> None:
        from utils import user_directory

        user = user_directory.register(name=name, email=email, password=password, role=role)
        click.echo(f"Created {user.role} {user.email} ({user.id})")

    @app.cli.command("create-authority")
    @click.option("--name", required=True)
    @click.option("--email", required=True)
    @click.password_option()
    def create_authority(name, email, password):
        """Create an authority account."""
        from models import UserRole

        _create_user(name, email, password, UserRole.AUTHORITY)

    @app.cli.command("create-citizen")
    @click.option("--name", required=True)
    @click.option("--email", required=True)
    @click.password_option()
    def create_citizen(name, email, password):
        """Create a citizen account."""
        from models import UserRole

        _create_user(name, email, password, UserRole.CITIZEN)


def create_app(config_name: Optional[str] = None) -> Flask:
    """Application factory with environment-aware configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    # Resolve configuration
    from config import DevelopmentConfig, ProductionConfig, TestingConfig

    config_key = (config_name or os.getenv("FLASK_CONFIG") or os.getenv("FLASK_ENV") or "production").lower()
    config_map = {
        "development": DevelopmentConfig,
        "dev": DevelopmentConfig,
        "production": ProductionConfig,
        "prod": ProductionConfig,
        "testing": TestingConfig,
        "test": TestingConfig,
    }
    config_class = config_map.get(config_key, ProductionConfig)
    app.config.from_object(config_class())
    app.json.sort_keys = False

    ensure_database_exists(app.config["SQLALCHEMY_DATABASE_URI"])

    # Optional instance-specific overrides
    if not app.config.get("TESTING"):
        app.config.from_pyfile("config.py", silent=True)
        os.makedirs(app.instance_path, exist_ok=True)
    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    # Initialize logging early
    logger = init_logging(app)
    app.logger = logger

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    register_auth(app)

    # Blueprints
    from routes import main_bp, auth_bp, complaints_bp, statistics_bp, users_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(complaints_bp)
    app.register_blueprint(statistics_bp)
    app.register_blueprint(users_bp)

    register_error_handlers(app)
    register_cli(app)

    @app.before_request
    def _answer_preflight():
        if request.method == "OPTIONS":
            return app.make_response(("", 204))

    @app.after_request
    def _after_request(response):
        response = apply_cors_headers(response, app.config.get("CORS_ORIGINS", []))
        return apply_security_headers(response, force_https=app.config.get("PREFERRED_URL_SCHEME") == "https")

    # Ensure tables exist so first run creates the database structure automatically.
    with app.app_context():
        db.create_all()
        ensure_default_authority(app)

    return app

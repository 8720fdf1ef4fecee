import os
from flask import Flask, redirect, url_for, session, request, jsonify
from dotenv import load_dotenv
from .auth import bp as auth_bp
from .admin import bp as admin_bp
from .mailer import bp as mailer_bp
from .projects import bp as projects_bp
from .db import init_db
from .gate import Decision, RequestDescriptor, authorize, is_gated, token_from_session
from .logging import setup_logging


def create_app(test_config=None):
    load_dotenv()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["MONGODB_URI"] = os.getenv("MONGODB_URI")
    app.config["MONGODB_DB"] = os.getenv("MONGODB_DB")
    app.config["RESEND_API_KEY"] = os.getenv("RESEND_API_KEY")
    app.config["RESEND_FROM_EMAIL"] = os.getenv("RESEND_FROM_EMAIL", "FYHT4 <no-reply@fyht4.com>")
    app.config["ADMIN_ELEVATION_PASSWORD"] = os.getenv("ADMIN_ELEVATION_PASSWORD")
    app.config["SITE_URL"] = os.getenv("SITE_URL")
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")
    app.config["LOG_FALLBACK_PATH"] = os.getenv("LOG_FALLBACK_PATH", "logs/app.log")
    if test_config:
        app.config.update(test_config)

    # Sin MONGODB_URI no arrancamos
    init_db(app)

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(mailer_bp)
    app.register_blueprint(projects_bp)

    setup_logging(app)

    # Middleware: gate de /admin y /api/admin
    @app.before_request
    def _admin_gate():
        path = request.path or "/"
        if not is_gated(path):
            return
        token = token_from_session(session)
        if authorize(RequestDescriptor(path=path, token=token)) is Decision.ALLOW:
            return
        app.logger.warning("Acceso denegado a %s (role=%s)", path, token.role if token else None)
        if path.startswith("/api/"):
            if token is None:
                return jsonify({"error": "Unauthorized"}), 401
            return jsonify({"error": "Forbidden"}), 403
        # páginas: a login, respetando ?next=
        return redirect(url_for("auth.login_get", next=path))

    # Healthcheck
    @app.get("/healthz")
    def health():
        return "ok", 200, {"Content-Type": "text/plain; charset=utf-8"}

    # Errores
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"error": "Internal server error"}), 500

    return app

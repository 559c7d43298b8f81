from __future__ import annotations
from flask import Flask, jsonify, request
from flask_cors import CORS

from app.core.container import Container
from app.domain.errors import InconsistentStateError, SparkHubError
from app.presentation.http.auth import require_auth
from app.presentation.http.blueprints.health_bp import bp as health_bp
from app.presentation.http.blueprints.customer_bp import bp as customer_bp
from app.presentation.http.blueprints.plan_bp import bp as plan_bp
from app.presentation.http.blueprints.session_bp import bp as session_bp
from app.presentation.http.blueprints.subscription_bp import bp as subscription_bp
from app.presentation.http.blueprints.log_bp import bp as log_bp
from app.shared.setup_logger import LOGGER
from app.shared.trace import get_trace_id, set_trace_id

logger = LOGGER.get_logger(__name__)

def create_app(container: Container | None = None) -> Flask:
    app = Flask(__name__, static_folder=None)
    app.container = container or Container()  # type: ignore
    CORS(app, origins=app.container.settings.cors_origins)

    @app.before_request
    def _trace_and_guard():
        set_trace_id(request.headers.get("X-Request-Id"))
        require_auth()

    @app.after_request
    def _echo_trace(resp):
        resp.headers["X-Request-Id"] = get_trace_id() or ""
        return resp

    @app.errorhandler(SparkHubError)
    def _domain_error(e: SparkHubError):
        if isinstance(e, InconsistentStateError):
            logger.error("needs reconciliation: %s | %s", e.message, e.details)
        else:
            logger.info("%s %s -> %s: %s", request.method, request.path, e.code, e.message)
        return jsonify(e.to_dict()), e.status_code

    app.register_blueprint(health_bp)
    app.register_blueprint(customer_bp)
    app.register_blueprint(plan_bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(subscription_bp)
    app.register_blueprint(log_bp)
    return app

"""The SCHOOL API MODULE"""

from datetime import datetime
import logging
import os
import sys

from flask import Flask, got_request_exception, jsonify, request
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy
import rollbar
import rollbar.contrib.flask
from werkzeug.middleware.proxy_fix import ProxyFix

from schoolapi.admission import AdmissionControl
from schoolapi.config import SETTINGS
from schoolapi.utils.file_storage import LocalFileStore
from schoolapi.utils.security_headers import get_security_headers

# Flask App
app = Flask(__name__)

# Respect trusted proxy configuration for accurate client IP detection
trusted_proxy_count = SETTINGS.get("TRUSTED_PROXY_COUNT", 0)
if trusted_proxy_count:
    app.wsgi_app = ProxyFix(  # type: ignore[assignment]
        app.wsgi_app,
        x_for=trusted_proxy_count,
        x_proto=trusted_proxy_count,
        x_host=trusted_proxy_count,
        x_port=trusted_proxy_count,
        x_prefix=trusted_proxy_count,
    )

logger = logging.getLogger()
log_level = SETTINGS.get("logging", {}).get("level", "INFO")
logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)

# Ensure all unhandled exceptions are logged, and reported to rollbar
formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
handler = logging.StreamHandler(stream=sys.stdout)
handler.setLevel(logging.INFO)
handler.setFormatter(formatter)
logger.addHandler(handler)

rollbar.init(os.getenv("ROLLBAR_SERVER_TOKEN"), os.getenv("ENVIRONMENT"))
with app.app_context():
    got_request_exception.connect(rollbar.contrib.flask.report_exception, app)


app.config["SQLALCHEMY_DATABASE_URI"] = SETTINGS.get("SQLALCHEMY_DATABASE_URI")

# Pool options only apply to server databases; SQLite uses a static pool
if app.config["SQLALCHEMY_DATABASE_URI"].startswith("postgresql"):
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        # Recycle connections after 1 hour to prevent stale connections
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
    }

app.config["JWT_SECRET_KEY"] = SETTINGS.get("JWT_SECRET_KEY") or SETTINGS.get(
    "SECRET_KEY"
)
app.config["JWT_ACCESS_TOKEN_EXPIRES"] = SETTINGS.get("JWT_ACCESS_TOKEN_EXPIRES")
app.config["JWT_TOKEN_LOCATION"] = SETTINGS.get("JWT_TOKEN_LOCATION")
app.config["TESTING"] = SETTINGS.get("TESTING", False)

# Transfer admission and audit configuration to Flask app config
app.config["ADMISSION"] = SETTINGS.get("ADMISSION", {})
app.config["AUDIT"] = SETTINGS.get("AUDIT", {})

# Configure request size limits for security; uploads plus form overhead
app.config["UPLOAD_FOLDER"] = SETTINGS.get("UPLOAD_FOLDER")
app.config["MAX_CONTENT_LENGTH"] = SETTINGS.get("MAX_UPLOAD_SIZE") + 1024 * 1024

# Database
db = SQLAlchemy(app)

jwt = JWTManager(app)

# Request admission (rate limiting, lockout, pattern inspection, audit log)
admission = AdmissionControl(app)

# Uploaded files
app.extensions["file_store"] = LocalFileStore(app.config["UPLOAD_FOLDER"])


@app.after_request
def set_security_headers(response):
    """Add security headers to all responses."""
    for header, value in get_security_headers(is_secure=request.is_secure).items():
        response.headers[header] = value
    return response


# DB has to be ready!
from schoolapi.models import User  # noqa: E402
from schoolapi.routes.api import endpoints, error  # noqa: E402

# Blueprint Flask Routing
app.register_blueprint(endpoints, url_prefix="/api")

logger.info(
    f"Registered Flask app with {len(list(app.url_map.iter_rules()))} total routes"
)


@jwt.user_lookup_loader
def user_lookup_callback(_jwt_header, jwt_data):
    identity = jwt_data["sub"]
    return User.query.filter_by(id=identity).one_or_none()


@app.route("/api-health", methods=["GET"])
def health_check():
    """Simple health check endpoint"""
    db_status = "unknown"
    try:
        from sqlalchemy import text

        result = db.session.execute(text("SELECT 1 as health_check")).fetchone()
        db_status = "healthy" if result and result[0] == 1 else "unhealthy"
    except Exception as e:
        logger.warning(f"Database health check failed: {str(e)}")
        db_status = "unhealthy"

    # 200 even if the database is down; the service itself is up
    return jsonify(
        {
            "status": "ok",
            "timestamp": datetime.utcnow().isoformat(),
            "database": db_status,
            "version": "1.0",
        }
    ), 200


@app.route("/ping", methods=["GET"])
def ping():
    """Simple ping endpoint without database dependency"""
    return jsonify(
        {"status": "ok", "timestamp": datetime.utcnow().isoformat(), "message": "pong"}
    ), 200


@app.errorhandler(403)
def forbidden(e):
    return error(status=403, detail="Forbidden")


@app.errorhandler(404)
def page_not_found(e):
    return error(status=404, detail="Not Found")


@app.errorhandler(405)
def method_not_allowed(e):
    return error(status=405, detail="Method Not Allowed")


@app.errorhandler(413)
def payload_too_large(e):
    return error(status=413, detail="Payload Too Large")


@app.errorhandler(500)
def internal_server_error(e):
    return error(status=500, detail="Internal Server Error")

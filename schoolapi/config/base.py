from datetime import timedelta
import logging
import os

logger = logging.getLogger(__name__)


def _split_env_list(name, default):
    return [s.strip() for s in (os.getenv(name) or default).split(",") if s.strip()]


SETTINGS = {
    "logging": {"level": os.getenv("LOG_LEVEL", "INFO")},
    "service": {"port": 3000},
    "ROLES": ["ADMIN", "TEACHER", "STUDENT"],
    "SQLALCHEMY_DATABASE_URI": os.getenv("DATABASE_URL")
    or (
        "postgresql://"
        + (os.getenv("DATABASE_ENV_POSTGRES_USER") or "postgres")
        + ":"
        + (os.getenv("DATABASE_ENV_POSTGRES_PASSWORD") or "postgres")
        + "@"
        + (os.getenv("DATABASE_PORT_5432_TCP_ADDR") or "localhost")
        + ":"
        + (os.getenv("DATABASE_PORT_5432_TCP_PORT") or "5432")
        + "/"
        + (os.getenv("DATABASE_ENV_POSTGRES_DB") or "school")
    ),
    "SECRET_KEY": os.getenv("SECRET_KEY"),
    "JWT_SECRET_KEY": os.getenv("JWT_SECRET_KEY") or os.getenv("SECRET_KEY"),
    "JWT_ACCESS_TOKEN_EXPIRES": timedelta(minutes=120),  # one school session
    "JWT_TOKEN_LOCATION": ["headers"],
    "TRUSTED_PROXY_COUNT": int(os.getenv("TRUSTED_PROXY_COUNT", "0")),
    "MAX_STUDENTS_PER_COURSE": 30,
    # Uploaded task and course files
    "UPLOAD_FOLDER": os.getenv("UPLOAD_FOLDER", "uploads"),
    "MAX_UPLOAD_SIZE": 5 * 1024 * 1024,
    "ALLOWED_UPLOAD_EXTENSIONS": [".pdf", ".doc", ".docx", ".jpg", ".png"],
    # Request admission: rate limiting, lockout and pattern inspection
    "ADMISSION": {
        "RATE_LIMITING": {
            "ENABLED": os.getenv("RATE_LIMITING_ENABLED", "true").lower() == "true",
            # GENERAL_LIMIT: applied to every request, keyed by client address
            "GENERAL_LIMIT": os.getenv("GENERAL_LIMIT") or "100 per 15 minutes",
            # SENSITIVE_LIMIT: applied in addition on SENSITIVE_ENDPOINTS
            "SENSITIVE_LIMIT": os.getenv("SENSITIVE_LIMIT") or "10 per 15 minutes",
            "SENSITIVE_ENDPOINTS": _split_env_list(
                "SENSITIVE_ENDPOINTS",
                "/api/auth/login,/api/auth/register,/api/users,/api/admin",
            ),
            "SWEEP_INTERVAL_SECONDS": 60,
        },
        "LOCKOUT": {
            "MAX_ATTEMPTS": int(os.getenv("LOGIN_MAX_ATTEMPTS", "5")),
            "DURATION_SECONDS": int(os.getenv("LOCKOUT_DURATION_SECONDS", "1800")),
        },
        # False keeps payload inspection detection-only
        "BLOCK_ON_PAYLOAD_MATCH": os.getenv("BLOCK_ON_PAYLOAD_MATCH", "false").lower()
        == "true",
        # None selects the built-in signature lists
        "URL_SIGNATURES": None,
        "PAYLOAD_SIGNATURES": None,
    },
    "AUDIT": {
        "LEVEL": os.getenv("AUDIT_LOG_LEVEL", "DEBUG"),
        "LOG_DIR": os.getenv("AUDIT_LOG_DIR", "logs"),
        "MAX_BYTES": 10 * 1024 * 1024,
        "BACKUP_COUNT": 10,
        "QUEUE_SIZE": 10000,
        "HISTORY_SIZE": 500,
        "CONSOLE": True,
    },
}

if not SETTINGS["JWT_SECRET_KEY"]:
    logger.warning(
        "JWT_SECRET_KEY is not set. Login tokens cannot be issued until "
        "JWT_SECRET_KEY or SECRET_KEY is configured."
    )

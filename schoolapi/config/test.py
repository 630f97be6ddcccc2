"""Configuration for testing environment"""

import os

SETTINGS = {
    # In-memory SQLite unless a database is provided (CI)
    "SQLALCHEMY_DATABASE_URI": os.getenv("DATABASE_URL", "sqlite:///:memory:"),
    "JWT_SECRET_KEY": os.getenv("JWT_SECRET_KEY", "test-jwt-secret-key"),
    # Testing flags
    "testing": True,
    "TESTING": True,
    "DEBUG": False,
    "ADMISSION": {
        "RATE_LIMITING": {
            "ENABLED": True,
            "GENERAL_LIMIT": "100 per 15 minutes",
            "SENSITIVE_LIMIT": "10 per 15 minutes",
        },
        "LOCKOUT": {"MAX_ATTEMPTS": 5, "DURATION_SECONDS": 1800},
        "BLOCK_ON_PAYLOAD_MATCH": False,
    },
    "AUDIT": {
        "LEVEL": "DEBUG",
        # No files or console noise in tests; history is still kept
        "LOG_DIR": None,
        "CONSOLE": False,
    },
}

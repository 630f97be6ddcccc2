"""HTTP security headers attached to every response"""

import os

CONTENT_SECURITY_POLICY = (
    "default-src 'self'; "
    "script-src 'self'; "
    "style-src 'self'; "
    "img-src 'self' data: https:; "
    "font-src 'self'; "
    "connect-src 'self'; "
    "frame-ancestors 'none'; "
    "base-uri 'self'; "
    "form-action 'self'"
)

PERMISSIONS_POLICY = (
    "geolocation=(), microphone=(), camera=(), "
    "payment=(), usb=(), magnetometer=(), gyroscope=()"
)

# Force HTTPS for 1 year, include subdomains
STRICT_TRANSPORT_SECURITY = "max-age=31536000; includeSubDomains; preload"


def is_production(environment=None):
    return (environment or os.getenv("ENVIRONMENT", "dev")) == "prod"


def get_security_headers(environment=None, is_secure=False):
    """Headers for the current environment.

    Development keeps a minimal set so the dashboard can still be framed by
    local tooling; production adds framing, CSP, feature and transport rules.
    """
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    if not is_production(environment):
        if is_secure:
            headers["Strict-Transport-Security"] = STRICT_TRANSPORT_SECURITY
        return headers

    headers.update(
        {
            "X-Frame-Options": "DENY",
            "Content-Security-Policy": CONTENT_SECURITY_POLICY,
            "Permissions-Policy": PERMISSIONS_POLICY,
            "X-Permitted-Cross-Domain-Policies": "none",
            "Cross-Origin-Opener-Policy": "same-origin",
            "Cross-Origin-Resource-Policy": "same-origin",
            "Strict-Transport-Security": STRICT_TRANSPORT_SECURITY,
        }
    )
    return headers

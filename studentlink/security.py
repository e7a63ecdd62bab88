from flask_talisman import Talisman

def init_security(app):
    """
    Staging/production security headers. The API serves JSON plus
    printable report pages, so the CSP only needs self-hosted assets.
    """
    csp = {
        "default-src": ["'self'"],
        "script-src":  ["'self'"],
        "style-src":   ["'self'", "'unsafe-inline'"],  # report templates embed their print CSS
        "img-src":     ["'self'", "data:"],
        "font-src":    ["'self'", "data:"],
        "connect-src": ["'self'"],
        "frame-ancestors": ["'none'"],
        "base-uri":    ["'self'"],
        "form-action": ["'self'"],
    }

    Talisman(
        app,
        content_security_policy=csp,
        force_https=True,
        strict_transport_security=True,
        session_cookie_secure=True,
        frame_options="DENY",
        referrer_policy="no-referrer",
    )

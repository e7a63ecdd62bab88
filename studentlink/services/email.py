import logging
import smtplib
import time
from typing import Optional, Dict, Any
from urllib.parse import urljoin
from flask import current_app, render_template
from flask_mail import Message
from studentlink.extensions import mail
from studentlink.observability import log_event

def absolute_url(path: str) -> str:
    base = current_app.config["APP_BASE_URL"].rstrip("/") + "/"
    path = path.lstrip("/")
    return urljoin(base, path)

def send_email(to_email: str, subject: str, template: str, context: Optional[Dict[str, Any]] = None) -> bool:
    """
    template: basename under templates/email/ without extension (e.g., 'concern_alert').
    Renders both HTML and plaintext. Returns True when handed to the mail backend.
    """
    context = context or {}
    msg = Message(recipients=[to_email], subject=subject)
    msg.body = render_template(f"email/{template}.txt", **context)
    msg.html = render_template(f"email/{template}.html", **context)

    start = time.perf_counter()
    try:
        mail.send(msg)
    except (smtplib.SMTPException, OSError) as ex:
        log_event(
            "mail_send",
            logging.WARNING,
            template=template,
            to=to_email.lower(),
            subject=subject,
            outcome="smtp_error",
            latency_ms=int((time.perf_counter() - start) * 1000),
            smtp_error=str(ex),
        )
        return False

    log_event(
        "mail_send",
        template=template,
        to=to_email.lower(),
        subject=subject,
        outcome="sent",
        latency_ms=int((time.perf_counter() - start) * 1000),
    )
    return True

from studentlink.extensions import db
from studentlink.models import Notification
from studentlink.observability import log_event
from .email import absolute_url, send_email

_TITLES = {
    "escalated": "Concern escalated",
    "overdue": "Concern overdue",
    "assignment": "Concern assigned",
    "high_priority": "High priority concern",
}

def notify(user, concern, message: str, kind: str) -> Notification:
    """Persist an in-app notification and mirror it by email. Caller commits."""
    title = _TITLES.get(kind, "Concern update")
    note = Notification(
        user_id=user.id,
        type=kind,
        title=title,
        message=message,
        data={"concern_id": concern.id, "reference_number": concern.reference_number},
    )
    db.session.add(note)

    if user.email:
        send_email(
            to_email=user.email,
            subject=f"[StudentLink] {title}: {concern.reference_number}",
            template="concern_alert",
            context={
                "user_name": user.name,
                "title": title,
                "message": message,
                "concern": concern,
                "action_url": absolute_url(f"concerns/{concern.id}"),
            },
        )
    log_event("notification", user_id=user.id, concern_id=concern.id, kind=kind)
    return note

def notify_department_head(concern, overdue: bool = False) -> bool:
    """True when a department head existed and was notified."""
    head = concern.department.head() if concern.department else None
    if head is None:
        log_event("notification.no_department_head", department_id=concern.department_id, concern_id=concern.id)
        return False
    if overdue:
        message = f"URGENT: Concern #{concern.reference_number} is overdue and needs immediate attention."
    else:
        message = f"Concern #{concern.reference_number} has been escalated due to response time threshold."
    notify(head, concern, message, "overdue" if overdue else "escalated")
    return True

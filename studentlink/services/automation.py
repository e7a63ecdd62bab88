"""
Inbound callbacks from the n8n workflow runner.

n8n reports its own urgency scale (low/medium/high/critical); we map it
onto concern priorities and only act on it above the configured
confidence threshold. Anything below is recorded for a human to review.
"""
import logging

from flask import current_app

from studentlink.extensions import db
from studentlink.models import Concern
from studentlink.observability import log_event
from studentlink.utils.helpers import isoformat, safe_int, utcnow
from . import cross_department
from .errors import NotFound, ValidationFailed
from .notifications import notify

URGENCY_TO_PRIORITY = {
    "low": "low",
    "medium": "medium",
    "high": "high",
    "critical": "urgent",
}
DEFAULT_MODEL = "n8n-ai-classifier"


def _concern_or_422(data: dict) -> Concern:
    concern_id = safe_int(data.get("concern_id"))
    concern = db.session.get(Concern, concern_id) if concern_id else None
    if concern is None:
        raise ValidationFailed({"concern_id": ["The selected concern_id is invalid."]})
    return concern

def acknowledge_concern(data: dict) -> dict:
    concern = _concern_or_422(data)
    log_event("n8n.concern_created", concern_id=concern.id, workflow=data.get("workflow"))
    return {
        "concern_id": concern.id,
        "reference_number": concern.reference_number,
        "status": concern.status,
        "priority": concern.priority,
    }

def request_cross_department(data: dict):
    """Pick the least-loaded outside staff member unless one is named."""
    concern = _concern_or_422(data)
    department_id = safe_int(data.get("requesting_department_id")) or concern.department_id
    staff_id = safe_int(data.get("staff_id"))
    if staff_id is None:
        candidates = cross_department.available_staff(department_id)
        if not candidates:
            raise NotFound("No available cross-department staff")
        staff_id = candidates[0]["id"]

    return cross_department.assign({
        "concern_id": concern.id,
        "staff_id": staff_id,
        "requesting_department_id": department_id,
        "assignment_type": data.get("assignment_type") or "cross_department",
        "estimated_duration_hours": data.get("estimated_duration_hours") or 8,
    }, assigned_by="n8n")

def _validate_classification(data: dict):
    errors = {}
    urgency = data.get("urgency_level")
    if urgency not in URGENCY_TO_PRIORITY:
        errors["urgency_level"] = ["The selected urgency_level is invalid."]
    try:
        confidence = float(data.get("confidence_score"))
        if not 0 <= confidence <= 1:
            raise ValueError
    except (TypeError, ValueError):
        errors["confidence_score"] = ["The confidence_score must be between 0 and 1."]
        confidence = None
    return urgency, confidence, errors

def apply_classification(data: dict) -> dict:
    concern_id = safe_int(data.get("concern_id"))
    concern = db.session.get(Concern, concern_id) if concern_id else None
    urgency, confidence, errors = _validate_classification(data)
    if concern is None:
        errors["concern_id"] = ["The selected concern_id is invalid."]
    if errors:
        raise ValidationFailed(errors)

    threshold = current_app.config.get("N8N_CONFIDENCE_THRESHOLD", 0.7)
    if confidence < threshold:
        log_event(
            "n8n.classification_low_confidence",
            level=logging.WARNING,
            concern_id=concern.id,
            urgency_level=urgency,
            confidence_score=confidence,
        )
        return {
            "concern_id": concern.id,
            "urgency_level": urgency,
            "confidence_score": confidence,
            "requires_manual_review": True,
        }

    priority = URGENCY_TO_PRIORITY[urgency]
    concern.priority = priority
    # reassign so the JSON column is flagged dirty
    concern.ai_classification = {
        **(concern.ai_classification or {}),
        "external": {
            "urgency_level": urgency,
            "confidence_score": confidence,
            "reasoning": data.get("reasoning"),
            "ai_model": data.get("ai_model") or DEFAULT_MODEL,
            "classified_at": isoformat(utcnow()),
        },
    }
    if priority in ("high", "urgent") and concern.assignee is not None:
        notify(
            concern.assignee,
            concern,
            f"Concern #{concern.reference_number} was classified as {urgency} "
            f"({round(confidence * 100)}% confidence).",
            "high_priority",
        )
    db.session.commit()
    log_event("n8n.classified", concern_id=concern.id, urgency_level=urgency, new_priority=priority)
    return {
        "concern_id": concern.id,
        "new_priority": priority,
        "urgency_level": urgency,
        "confidence_score": confidence,
    }

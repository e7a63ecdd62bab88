from flask import request

from studentlink.responses import fail, ok
from studentlink.services.classification import classify, classify_concern
from . import bp


@bp.post("/classify-concern")
def classify_concern_text():
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    subject = data.get("subject")
    description = data.get("description")
    if not any(isinstance(v, str) and v.strip() for v in (text, subject, description)):
        return fail("Validation failed", 422, errors={"text": ["Provide text or subject and description."]})

    result = classify(text) if text else classify_concern(subject, description)
    return ok(result)

from flask import jsonify

def ok(data=None, message: str | None = None, status: int = 200, **extra):
    """Success envelope: {success: true, message?, data?, ...extra}."""
    body = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status

def fail(message: str, status: int, **extra):
    """Error envelope: {success: false, message, ...extra}."""
    body = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status

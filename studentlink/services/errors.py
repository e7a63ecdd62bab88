class ServiceError(RuntimeError):
    """Domain failure a blueprint can hand straight to the client."""

    status_code = 400

    def __init__(self, message: str, errors: dict | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationFailed(ServiceError):
    status_code = 422

    def __init__(self, errors: dict, message: str = "Validation failed"):
        super().__init__(message, errors=errors)


class NotFound(ServiceError):
    status_code = 404


class Forbidden(ServiceError):
    status_code = 403

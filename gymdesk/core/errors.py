"""Domain errors raised by the CRUD layer and translated at the API edges."""


class GymDeskError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GymDeskError):
    status_code = 400
    code = "validation_error"


class NotFoundError(GymDeskError):
    status_code = 404
    code = "not_found"


class ConflictError(GymDeskError):
    status_code = 409
    code = "conflict"


class InvalidTransitionError(ConflictError):
    code = "invalid_transition"

    def __init__(self, action: str, status: str):
        super().__init__(f"Cannot {action} a subscription that is {status}")
        self.action = action
        self.status = status


class AuthError(GymDeskError):
    status_code = 401
    code = "unauthorized"


class PermissionDeniedError(GymDeskError):
    status_code = 403
    code = "forbidden"

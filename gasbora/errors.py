"""Error taxonomy shared by services, backends and the HTTP layer."""

from __future__ import annotations


class GasboraError(Exception):
    kind = "error"
    status_code = 400
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.kind, "message": self.message}


# ---------- locally detected ----------

class ValidationFailed(GasboraError, ValueError):
    kind = "validation"
    status_code = 422
    default_message = "Please fix the highlighted fields"

    def __init__(self, errors: dict[str, str] | None = None, message: str | None = None):
        self.errors = dict(errors or {})
        if message is None and len(self.errors) == 1:
            message = next(iter(self.errors.values()))
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.errors:
            data["fields"] = self.errors
        return data


class InvalidImageType(ValidationFailed):
    kind = "invalid_type"
    status_code = 415
    default_message = "Please upload a JPEG, PNG, WebP, or GIF image."

    def __init__(self, message: str | None = None):
        super().__init__(message=message or self.default_message)


class CapacityExceeded(GasboraError):
    kind = "capacity"
    status_code = 409
    default_message = "Image limit reached"


class ImageTooLarge(CapacityExceeded):
    kind = "too_large"
    status_code = 413
    default_message = "Please upload an image smaller than 5MB."


# ---------- reported by the backend ----------

class PermissionDenied(GasboraError, PermissionError):
    kind = "permission"
    status_code = 403
    default_message = "You don't have permission to do that"


class InvalidCredentials(PermissionDenied):
    kind = "invalid_credentials"
    status_code = 401
    default_message = "Invalid email or password. Please try again."


class NotAuthenticated(PermissionDenied):
    kind = "not_authenticated"
    status_code = 401
    default_message = "Please sign in first"


class NotFound(GasboraError, LookupError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class Conflict(GasboraError):
    kind = "conflict"
    status_code = 409
    default_message = "Conflict"


class TransportError(GasboraError, ConnectionError):
    kind = "transport"
    status_code = 502
    default_message = "Service unavailable, please try again"


class UploadFailed(TransportError):
    kind = "upload_failed"
    default_message = "Failed to upload image"

from typing import Dict, Optional


class NotesApiError(Exception):
    """
    Base class for errors surfaced to API clients.

    Each subclass fixes the machine-readable `kind` and the HTTP status code;
    the message is the human-readable part of the response.
    """
    kind = "Error"
    status_code = 500
    default_message = "An internal error occurred"
    headers: Optional[Dict[str, str]] = None

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.message, "kind": self.kind}


class ValidationError(NotesApiError):
    kind = "ValidationError"
    status_code = 400
    default_message = "Invalid request"


class DuplicateEmail(NotesApiError):
    kind = "DuplicateEmail"
    status_code = 409
    default_message = "Email already registered"


class InvalidCredentials(NotesApiError):
    kind = "InvalidCredentials"
    status_code = 401
    default_message = "Invalid credentials"


class MissingToken(NotesApiError):
    kind = "MissingToken"
    status_code = 401
    default_message = "Missing token"
    headers = {"WWW-Authenticate": "Bearer"}


class InvalidToken(NotesApiError):
    kind = "InvalidToken"
    status_code = 401
    default_message = "Invalid token"
    headers = {"WWW-Authenticate": "Bearer"}


class NotFound(NotesApiError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"


class StorageError(NotesApiError):
    """Unexpected backend failure. The message never carries driver details."""
    kind = "StorageError"
    status_code = 500
    default_message = "An internal error occurred. Please try again later."


class ConfigurationError(RuntimeError):
    """Raised at startup when the configuration is unsafe or incomplete."""

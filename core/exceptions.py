"""Error taxonomy shared by the numbering and consolidation services.

Every error carries enough information for a caller to decide whether
resubmitting the same request is safe:

- validation / precondition errors: the request itself must change
- persistence / external dependency errors: transient, may be retried
"""


class DocumentError(Exception):
    category = "error"
    http_status = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict:
        return {"error": self.message, "category": self.category, "retryable": self.retryable}


class DocumentValidationError(DocumentError):
    """Missing/empty required field, empty line-item set, malformed value."""

    category = "validation"
    http_status = 400


class PreconditionFailed(DocumentError):
    """The request is well-formed but the current state does not allow it."""

    category = "precondition"
    http_status = 409


class PersistenceError(DocumentError):
    category = "persistence"
    http_status = 500
    retryable = True


class ExternalDependencyError(DocumentError):
    """Catalog / tax-rate lookup failed. Callers fall back to static rules."""

    category = "external_dependency"
    http_status = 502
    retryable = True

"""Exception taxonomy for the schematic pipeline."""

from models.backend_reply import NormalizedError


class SchematicAuditorError(Exception):
    """Base class for every classified failure of a run."""


class BackendInvocationError(SchematicAuditorError):
    """The model service could not be called or returned nothing usable."""

    def __init__(self, error: NormalizedError):
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> str:
        return self.error.code


class BackendTimeoutError(BackendInvocationError):
    """The client-side deadline expired before the backend answered."""


class NormalizationError(SchematicAuditorError):
    kind = "normalization_error"


class MalformedResponse(NormalizationError):
    """No parseable JSON object could be extracted from the reply."""

    kind = "malformed_response"


class SchemaViolation(NormalizationError):
    """Parsed JSON does not match the declared response contract."""

    kind = "schema_violation"

    def __init__(self, field: str, reason: str = "missing required field"):
        super().__init__(f"{reason}: {field}")
        self.field = field
        self.reason = reason

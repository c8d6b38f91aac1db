from __future__ import annotations

from enum import StrEnum


class ValidationErrorKind(StrEnum):
    unknown_variant = "unknown_variant"
    missing_field = "missing_field"
    out_of_range = "out_of_range"
    invalid_enum_member = "invalid_enum_member"
    referential_mismatch = "referential_mismatch"
    wrong_type = "wrong_type"


class FlowErrorKind(StrEnum):
    not_ready = "not_ready"
    invalid_transition = "invalid_transition"
    flow_already_closed = "flow_already_closed"


class ContentValidationError(ValueError):
    """Raised when a raw content record does not describe a valid variant.

    `path` is the dotted wire name of the first field that failed (e.g.
    `gridSize.rows`); it is empty when the record itself is unusable.
    """

    def __init__(self, kind: ValidationErrorKind, message: str, *, path: str = ""):
        self.kind = kind
        self.path = path
        self.message = message
        where = f" at '{path}'" if path else ""
        super().__init__(f"{kind.value}{where}: {message}")

    def as_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "path": self.path, "message": self.message}


class FlowStateError(ValueError):
    """A step sequencer contract violation."""

    def __init__(self, kind: FlowErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


class SessionStateError(ValueError):
    """An operation was attempted in a session phase that does not allow it."""


class RecordNotFound(ValueError):
    """A stored flow or session does not exist."""

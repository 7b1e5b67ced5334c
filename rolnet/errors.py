"""Error kinds shared by the switch synchronizer and the host network manager."""

from __future__ import annotations

from dataclasses import dataclass

VALIDATION_ERROR_MESSAGE = "validation error"


class RolError(Exception):
    """Base exception for all rolnet errors."""


class NotFoundError(RolError):
    """A referenced switch, port, VLAN, link or file does not exist."""


@dataclass(frozen=True)
class FieldError:
    """One offending input item of a validation failure."""

    field: str
    message: str


class ValidationError(RolError):
    """Input failed validation.

    Multi-item checks add one :class:`FieldError` per offending item instead
    of stopping at the first one.
    """

    def __init__(self, message: str = VALIDATION_ERROR_MESSAGE, errors: list[FieldError] | None = None):
        self.errors: list[FieldError] = list(errors or [])
        super().__init__(message)

    @classmethod
    def for_field(cls, field: str, message: str) -> ValidationError:
        return cls(errors=[FieldError(field, message)])

    def add(self, field: str, message: str) -> ValidationError:
        self.errors.append(FieldError(field, message))
        return self

    def raise_if_any(self) -> None:
        if self.errors:
            raise self

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        details = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        return f"{base} ({details})"


class InternalError(RolError):
    """Store, kernel or switch management failure.

    The underlying exception is kept in ``cause`` and chained as
    ``__cause__`` when raised with ``raise ... from``.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.cause is None:
            return base
        return f"{base}: {self.cause}"

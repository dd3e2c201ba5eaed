"""Domain-specific exceptions"""

from decimal import Decimal
from typing import Dict, List, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input has the wrong shape or range; the operation was not attempted"""

    def __init__(self, errors: Dict[str, str] | str, field: str = "__all__"):
        if isinstance(errors, str):
            errors = {field: errors}
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class InvalidStatusTransition(ValidationError):
    """Requested status change is not allowed from the current status"""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"cannot move from {current} to {requested}", field="status")


class GroupedEntryError(ValidationError):
    """Entry belongs to an installment group and must be handled as a unit"""

    def __init__(self, entry_id: str, group_id: str):
        self.entry_id = entry_id
        self.group_id = group_id
        super().__init__(
            f"entry {entry_id} belongs to installment group {group_id}; "
            "delete the group or request single-installment deletion",
            field="installment_group_id",
        )


class InstallmentNotAllowed(DomainException):
    """Installments require a CREDITO payment on a credit-capable account"""

    pass


class InvalidTransfer(DomainException):
    """Transfer preconditions failed (same account, unknown account, foreign owner)"""

    pass


class AmountMismatch(DomainException):
    """Settlement amount does not match the invoice total"""

    def __init__(self, expected: Decimal, actual: Decimal, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"invoice total is {expected}, payment is {actual}")


class NotAuthenticated(DomainException):
    """No authenticated user, or the store rejected the credentials"""

    pass


class NotFound(DomainException):
    """Requested record does not exist for this owner"""

    pass


class StorageError(DomainException):
    """Persistence collaborator failed; the underlying error is attached as cause"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class PartialWriteFailure(StorageError):
    """A multi-record unit failed part-way; compensation was attempted"""

    def __init__(
        self,
        operation: str,
        intended: int,
        written: int,
        cause: Optional[BaseException] = None,
        orphaned: Optional[List[str]] = None,
    ):
        self.operation = operation
        self.intended = intended
        self.written = written
        self.orphaned = orphaned or []
        message = f"{operation} failed after {written} of {intended} records"
        if self.orphaned:
            message += f"; compensation left {len(self.orphaned)} orphaned record(s)"
        super().__init__(message, cause)

"""
Export Errors

Labeled failures reported by the exporter. None are retried; the caller
may re-invoke the operation.
"""

from enum import Enum


class ExportErrorKind(Enum):
    """Failure labels"""
    EMPTY_INPUT = "EmptyInput"
    MISSING_BACKING_STORE = "MissingBackingStore"
    WRITE_FAILURE = "WriteFailure"
    UNSUPPORTED_ENVIRONMENT = "UnsupportedEnvironment"


class ExportError(Exception):
    """Base class for export failures"""
    kind: ExportErrorKind = ExportErrorKind.WRITE_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class EmptyInputError(ExportError):
    """Operation needs at least one reading"""
    kind = ExportErrorKind.EMPTY_INPUT


class MissingBackingStoreError(ExportError):
    """Store file to snapshot does not exist"""
    kind = ExportErrorKind.MISSING_BACKING_STORE


class WriteFailureError(ExportError):
    """Filesystem write or copy failed"""
    kind = ExportErrorKind.WRITE_FAILURE


class UnsupportedEnvironmentError(ExportError):
    """Operation needs direct filesystem access"""
    kind = ExportErrorKind.UNSUPPORTED_ENVIRONMENT

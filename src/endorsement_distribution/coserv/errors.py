"""Typed error taxonomy for CoSERV query resolution.

Every error carries a machine-readable ``kind`` and exposes an
``error_class`` telling the transport layer which family of status codes
applies:

    CoservError (base)
        DecodeError     MALFORMED_ENCODING, MALFORMED_DOCUMENT, MISSING_PROFILE
        SynthesisError  INVALID_CLASS_SELECTOR, INVALID_INSTANCE_SELECTOR,
                        UNSUPPORTED_ARTIFACT_TYPE
        StoreError      NOT_FOUND, CONNECTION_FAILURE, TRANSACTION_FAILURE,
                        MALFORMED_VALUE
        EncodeError     SERIALIZATION_FAILURE
        ResolveError    wraps any of the above (kind preserved), or
                        NO_ARTIFACTS_FOUND, TIMEOUT
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorClass(str, Enum):
    """Transport-level family of an error."""

    CLIENT = "client"
    NOT_FOUND = "not_found"
    SERVER = "server"


class DecodeErrorKind(str, Enum):
    MALFORMED_ENCODING = "malformed_encoding"
    MALFORMED_DOCUMENT = "malformed_document"
    MISSING_PROFILE = "missing_profile"


class SynthesisErrorKind(str, Enum):
    INVALID_CLASS_SELECTOR = "invalid_class_selector"
    INVALID_INSTANCE_SELECTOR = "invalid_instance_selector"
    UNSUPPORTED_ARTIFACT_TYPE = "unsupported_artifact_type"


class StoreErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONNECTION_FAILURE = "connection_failure"
    TRANSACTION_FAILURE = "transaction_failure"
    MALFORMED_VALUE = "malformed_value"


class EncodeErrorKind(str, Enum):
    SERIALIZATION_FAILURE = "serialization_failure"


class ResolveErrorKind(str, Enum):
    NO_ARTIFACTS_FOUND = "no_artifacts_found"
    TIMEOUT = "timeout"


class CoservError(Exception):
    """Base exception for CoSERV processing errors.

    Attributes:
        kind: Machine-readable error kind.
        message: Human-readable description.
        detail: Optional structured context (selector index, key, ...).
    """

    error_class: ErrorClass = ErrorClass.SERVER

    def __init__(
        self,
        kind: Enum,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.detail = detail or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}: {self.message})"


class DecodeError(CoservError):
    """The encoded query could not be turned into a Query."""

    error_class = ErrorClass.CLIENT

    def __init__(self, kind: DecodeErrorKind, message: str) -> None:
        super().__init__(kind, message)


class SynthesisError(CoservError):
    """Lookup keys could not be derived from the query."""

    error_class = ErrorClass.CLIENT

    def __init__(
        self,
        kind: SynthesisErrorKind,
        message: str,
        index: int | None = None,
    ) -> None:
        self.index = index
        super().__init__(kind, message, {"index": index} if index is not None else None)


class StoreError(CoservError):
    """The backing store failed or has no value for a key."""

    def __init__(self, kind: StoreErrorKind, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(kind, message, {"key": key} if key is not None else None)

    @property
    def error_class(self) -> ErrorClass:  # type: ignore[override]
        if self.kind == StoreErrorKind.NOT_FOUND:
            return ErrorClass.NOT_FOUND
        return ErrorClass.SERVER


class EncodeError(CoservError):
    """The result envelope could not be serialized."""

    error_class = ErrorClass.SERVER

    def __init__(self, kind: EncodeErrorKind, message: str) -> None:
        super().__init__(kind, message)


class ResolveError(CoservError):
    """Resolution of a query failed.

    Wraps the underlying error when there is one, keeping its kind and
    error class.

    Attributes:
        cause: The wrapped error, or None for resolver-level failures.
    """

    def __init__(
        self,
        kind: Enum,
        message: str,
        cause: CoservError | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.cause = cause
        merged = dict(cause.detail) if cause is not None else {}
        merged.update(detail or {})
        super().__init__(kind, message, merged)

    @classmethod
    def wrap(cls, error: CoservError) -> ResolveError:
        """Wrap a component error, preserving its kind."""
        return cls(error.kind, error.message, cause=error)

    @property
    def error_class(self) -> ErrorClass:  # type: ignore[override]
        if self.cause is not None:
            return self.cause.error_class
        if self.kind == ResolveErrorKind.NO_ARTIFACTS_FOUND:
            return ErrorClass.NOT_FOUND
        return ErrorClass.SERVER

"""
Structured error types for docseries.

Every failure the allocator, the series store, the codec or the import
reconciler can surface is a :class:`DocSeriesError`.  Errors carry a
category, a retry flag, structured context and an optional chained cause so
that the calling layer (HTTP handler, CLI, import job) can decide between
"reject this one input", "retry with backoff" and "fail the request"
without string matching.

Manifesto:
    - **Typed hierarchy:** One class per caller decision, not per call site
    - **Explicit retry semantics:** Each error knows if it is retryable
    - **Rich context:** Errors carry metadata for logging
    - **Error chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      DocSeriesError                          │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  MalformedCode        AllocationTimedOut   StorageUnavailable│
        │  (PARSE)              (CONCURRENCY, retry) (STORAGE, retry)  │
        │                                                              │
        │  SeriesInUse          SeriesNotFound       DuplicateDocument │
        │  (CONSTRAINT)         (CONSTRAINT)         (CONSTRAINT)      │
        │                                                              │
        │  InvalidConfig                                               │
        │  (CONFIG)                                                    │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = AllocationTimedOut("lock wait exceeded", timeout=5.0)
    >>> error.retryable
    True
    >>> error.to_dict()["category"]
    'CONCURRENCY'

    >>> try:
    ...     parse_code("not-a-code", fmt)
    ... except MalformedCode as e:
    ...     print(e.reason)

Guardrails:
    ❌ DON'T: Retry AllocationTimedOut inside the allocator
    ✅ DO: Surface it and let the caller back off

    ❌ DON'T: Swallow the original driver exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, retry-logic, docseries
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    PARSE = "PARSE"                # Malformed codes / filenames
    CONCURRENCY = "CONCURRENCY"    # Lock waits, serialization conflicts
    CONSTRAINT = "CONSTRAINT"      # Referential / uniqueness guards
    STORAGE = "STORAGE"            # Connection loss, driver failures
    CONFIG = "CONFIG"              # Invalid settings / code format
    INTERNAL = "INTERNAL"          # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Typed fields cover what the series core knows about a failing call;
    anything else lands in ``metadata``.  ``to_dict()`` drops unset fields
    so log lines stay short.

    Attributes:
        scope: Owning project / tenant of the key involved
        key: Display form of the hierarchical key
        series_id: Series row id, when known
        operation: Core operation name (``allocate``, ``reconcile`` ...)
        metadata: Additional key-value pairs
    """

    scope: int | None = None
    key: str | None = None
    series_id: int | None = None
    operation: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for name in ["scope", "key", "series_id", "operation"]:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DocSeriesError(Exception):
    """
    Base exception for all docseries errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.

    Examples:
        >>> error = DocSeriesError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(scope=7, operation="allocate").context.scope
        7
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DocSeriesError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SeriesInUse(...).with_context(scope=1, series_id=42)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# PARSE ERRORS
# =============================================================================


class MalformedCode(DocSeriesError):
    """
    A raw code or filename does not match the configured code format.

    Always recoverable by the caller: reject the one input and continue the
    batch.  ``raw`` is the offending input and ``reason`` a short,
    user-presentable explanation.
    """

    default_category = ErrorCategory.PARSE
    default_retryable = False

    def __init__(self, raw: str, reason: str, **kwargs: Any):
        super().__init__(f"Malformed code {raw!r}: {reason}", **kwargs)
        self.raw = raw
        self.reason = reason


# =============================================================================
# CONCURRENCY ERRORS
# =============================================================================


class AllocationTimedOut(DocSeriesError):
    """
    The per-series lock could not be acquired within the configured bound.

    Retryable by the caller with backoff; never retried internally.
    """

    default_category = ErrorCategory.CONCURRENCY
    default_retryable = True

    def __init__(self, message: str, *, timeout: float | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.timeout = timeout


# =============================================================================
# CONSTRAINT ERRORS
# =============================================================================


class SeriesInUse(DocSeriesError):
    """Deletion refused because documents still reference the series."""

    default_category = ErrorCategory.CONSTRAINT
    default_retryable = False

    def __init__(self, series_id: int, document_count: int, **kwargs: Any):
        super().__init__(
            f"Cannot delete code series {series_id} because "
            f"{document_count} document(s) reference it",
            **kwargs,
        )
        self.series_id = series_id
        self.document_count = document_count


class SeriesNotFound(DocSeriesError):
    """No series with the given id exists in the scope."""

    default_category = ErrorCategory.CONSTRAINT
    default_retryable = False


class DuplicateDocument(DocSeriesError):
    """A document with the same key and number is already recorded."""

    default_category = ErrorCategory.CONSTRAINT
    default_retryable = False


# =============================================================================
# STORAGE / CONFIG ERRORS
# =============================================================================


class StorageUnavailable(DocSeriesError):
    """
    Substrate-level failure (connection loss, driver error).

    The transaction has been rolled back before this is raised, so no
    partial state is visible.
    """

    default_category = ErrorCategory.STORAGE
    default_retryable = True


class InvalidConfig(DocSeriesError):
    """Invalid code format or settings value."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# UTILITIES
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, DocSeriesError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DocSeriesError",
    "MalformedCode",
    "AllocationTimedOut",
    "SeriesInUse",
    "SeriesNotFound",
    "DuplicateDocument",
    "StorageUnavailable",
    "InvalidConfig",
    "is_retryable",
]

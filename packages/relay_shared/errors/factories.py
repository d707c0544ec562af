"""Factory helpers for creating consistent shared errors."""

from __future__ import annotations

from typing import Mapping

from . import codes
from .types import ErrorCategory, ErrorDetail


def validation_error(
    message: str,
    *,
    code: str = codes.VALIDATION_ERROR,
    metadata: Mapping[str, object] | None = None,
) -> ErrorDetail:
    """Create a validation-category error."""
    return _build(ErrorCategory.VALIDATION, message, code=code, metadata=metadata)


def not_found_error(
    message: str,
    *,
    code: str = codes.NOT_FOUND,
    metadata: Mapping[str, object] | None = None,
) -> ErrorDetail:
    """Create a not-found-category error."""
    return _build(ErrorCategory.NOT_FOUND, message, code=code, metadata=metadata)


def conflict_error(
    message: str,
    *,
    code: str = codes.CONFLICT,
    metadata: Mapping[str, object] | None = None,
) -> ErrorDetail:
    """Create a conflict-category error."""
    return _build(ErrorCategory.CONFLICT, message, code=code, metadata=metadata)


def policy_error(
    message: str,
    *,
    code: str = codes.POLICY_VIOLATION,
    metadata: Mapping[str, object] | None = None,
) -> ErrorDetail:
    """Create a policy-category error."""
    return _build(ErrorCategory.POLICY, message, code=code, metadata=metadata)


def dependency_error(
    message: str,
    *,
    code: str = codes.DEPENDENCY_FAILURE,
    retryable: bool = True,
    metadata: Mapping[str, object] | None = None,
) -> ErrorDetail:
    """Create a dependency-category error; retryable unless told otherwise."""
    return _build(
        ErrorCategory.DEPENDENCY,
        message,
        code=code,
        metadata=metadata,
        retryable=retryable,
    )


def internal_error(
    message: str,
    *,
    code: str = codes.INTERNAL_ERROR,
    metadata: Mapping[str, object] | None = None,
) -> ErrorDetail:
    """Create an internal-category error."""
    return _build(ErrorCategory.INTERNAL, message, code=code, metadata=metadata)


def _build(
    category: ErrorCategory,
    message: str,
    *,
    code: str,
    metadata: Mapping[str, object] | None,
    retryable: bool = False,
) -> ErrorDetail:
    return ErrorDetail(
        code=code,
        message=message,
        category=category,
        retryable=retryable,
        metadata=_meta(metadata),
    )


def _meta(metadata: Mapping[str, object] | None) -> dict[str, str]:
    """Normalize optional metadata into a plain dict of strings."""
    if metadata is None:
        return {}
    return {str(key): str(value) for key, value in metadata.items()}

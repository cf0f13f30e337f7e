"""
PolicyGate Exception Hierarchy

Provides domain-specific error codes for callers integrating with PolicyGate.
Every failure returns a deterministic, actionable error code.

Error Codes:
- PG_CONFIGURATION_INVALID: Taxonomy, label catalog, weights or pack malformed
- PG_INPUT_INVALID: Input validation failed (text is not a string)
- PG_INTERNAL_ERROR: Unexpected internal error (catch-all)

The engine is pure computation over in-memory data, so nothing here is
retryable. evaluate() either returns a complete verdict or raises.
"""

from typing import Any, Dict, Optional
import json

import yaml

__all__ = [
    # Exception classes
    'PolicyGateError',
    'ConfigurationError',
    'InvalidInputError',
    'InternalError',
    # Mapping utilities
    'EXCEPTION_MAP',
    'wrap_internal_exception',
]


class PolicyGateError(Exception):
    """
    Base exception for all PolicyGate errors.

    Provides a consistent interface for error handling with:
    - code: A deterministic error code (PG_*)
    - message: Human-readable error description
    - details: Additional context as a dictionary
    - request_id: Optional request identifier for tracing

    All errors can be serialized to dict or JSON for API responses.
    """

    code: str = "PG_INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else {}
        self.request_id = request_id

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize error to a dictionary.

        Returns:
            Dictionary with code, message, details, and optionally request_id
        """
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }
        if self.request_id is not None:
            result["request_id"] = self.request_id
        return result

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize error to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"request_id={self.request_id!r})"
        )


class ConfigurationError(PolicyGateError):
    """
    Configuration is malformed.

    Raised before any gate evaluation when:
    - A taxonomy is not a mapping of category -> list of phrases
    - A phrase list is empty or contains non-string / blank entries
    - The label catalog is missing its "general" fallback entry
    - Confidence weights are negative, unknown, or sum to zero
    """

    code: str = "PG_CONFIGURATION_INVALID"


class InvalidInputError(PolicyGateError):
    """
    Input validation failed.

    Raised when the text handed to the engine is not a string. An empty
    string is valid input and yields a clean no-violation verdict.
    """

    code: str = "PG_INPUT_INVALID"


class InternalError(PolicyGateError):
    """
    Unexpected internal error.

    Catch-all for errors that don't fit other categories. This is the
    default error code for the PolicyGateError base class.
    """

    code: str = "PG_INTERNAL_ERROR"


# =============================================================================
# EXCEPTION MAPPING
# =============================================================================

# Internal exceptions -> public error classes, used by wrap_internal_exception()
# at the CLI and service boundaries.
EXCEPTION_MAP: Dict[type, type] = {
    # Malformed YAML is a configuration problem, not an input problem
    yaml.YAMLError: ConfigurationError,

    # KeyError (missing catalog / pack entries) -> PG_CONFIGURATION_INVALID
    KeyError: ConfigurationError,

    # ValueError / TypeError -> PG_INPUT_INVALID
    ValueError: InvalidInputError,
    TypeError: InvalidInputError,
}


def _register_pack_errors() -> None:
    # pack_loader imports this module, so its errors are registered lazily
    from .pack_loader import PackCompilationError, PackLoaderError, PackValidationError

    EXCEPTION_MAP.setdefault(PackValidationError, ConfigurationError)
    EXCEPTION_MAP.setdefault(PackCompilationError, ConfigurationError)
    EXCEPTION_MAP.setdefault(PackLoaderError, ConfigurationError)


def wrap_internal_exception(
    exc: Exception,
    default_message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None
) -> PolicyGateError:
    """
    Wrap an internal exception as a PolicyGateError.

    Maps known exception types to error codes using EXCEPTION_MAP, walking
    the exception's MRO so subclasses (e.g. yaml.ScannerError) resolve to
    their base entry. Unknown exceptions map to InternalError.

    Use with exception chaining to preserve the traceback:
        try:
            pack = load_pack_yaml(path)
        except PackLoaderError as e:
            raise wrap_internal_exception(e, details={"path": path}) from e

    Args:
        exc: The internal exception to wrap
        default_message: Override message (uses str(exc) if None)
        details: Additional structured details to include
        request_id: Optional request ID for tracing

    Returns:
        Appropriate PolicyGateError subclass instance
    """
    if isinstance(exc, PolicyGateError):
        return exc

    _register_pack_errors()

    error_class = InternalError
    for klass in type(exc).__mro__:
        if klass in EXCEPTION_MAP:
            error_class = EXCEPTION_MAP[klass]
            break

    error_details = details.copy() if details else {}
    error_details["internal_error"] = type(exc).__name__

    # Pack validation errors carry the full list of problems
    if hasattr(exc, 'errors') and isinstance(exc.errors, list):
        error_details["errors"] = list(exc.errors)

    return error_class(
        message=default_message or str(exc),
        details=error_details,
        request_id=request_id
    )

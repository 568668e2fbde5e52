"""
Recordbook Backend: Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the two error classes the API knows.
How:   Each exception carries a message, a status code, and a context dict.
       Global exception handlers (registered in main.py) turn them into JSON
       responses with the right HTTP status.
Who:   Raised by services and route helpers; caught by global handlers.

Exception Hierarchy:
    RecordbookError (base)            → 500
    ├── ValidationError               → 400 Bad Request (never touches storage)
    ├── RequestBodyError              → 500 (request body is not valid JSON)
    └── DatabaseError                 → 500 (store failure)
        └── StoreNotBoundError        → 500 (no engine injected)

Response bodies:
    ValidationError: {"error": message, **details}
                     details carries `required` and/or `received`
    Everything else: {"error": message, "stack": traceback[, "type": error_type]}
"""

import traceback
from typing import Any, Dict, Optional


class RecordbookError(Exception):
    """
    Base exception for all Recordbook application errors.

    Attributes:
        message:  Error description returned to the client as `error`
        context:  Additional debug info (logged, not returned)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(RecordbookError):
    """
    Raised when a request body fails validation.

    When:    Missing or empty required field, non-string field, grade outside
             the allowed set.
    HTTP:    400 Bad Request

    `details` is merged into the response body, so the client sees what was
    expected next to what it sent:

        {
            "error": "缺少必填字段",
            "required": ["date", "grade", "department", "content"],
            "received": {"date": "2024-01-15"}
        }
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.details = details or {}


class RequestBodyError(RecordbookError):
    """
    Raised when a request body cannot be decoded as JSON.

    HTTP:    500, same shape as store failures. Kept distinct from
             ValidationError: the body never reached schema validation.
    """

    def __init__(
        self,
        message: str = "Request body is not valid JSON",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(RecordbookError):
    """
    Raised when a store operation fails.

    What:    A query, insert, delete, or DDL statement failed.
    When:    Missing table, connection lost, constraint violation, driver error.
    HTTP:    500 Internal Server Error

    The message is the driver's own message. `error_type`, when set, is echoed
    as `type` in the response body (the list endpoint tags its failures with
    DATABASE_ERROR).
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        error_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.error_type = error_type


class StoreNotBoundError(DatabaseError):
    """Raised when a RecordStore was built without an engine."""

    def __init__(
        self,
        message: str = "数据库未绑定，请检查数据库绑定配置",
        error_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, error_type=error_type, context=context)


def format_stack(exc: BaseException) -> str:
    """Formatted traceback of `exc` and its chained causes."""
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def server_error_body(
    exc: BaseException, message: str, expose_stack: bool = True
) -> Dict[str, Any]:
    """{"error": message, "stack": traceback}; `stack` only when expose_stack."""
    body: Dict[str, Any] = {"error": message}
    if expose_stack:
        body["stack"] = format_stack(exc)
    return body

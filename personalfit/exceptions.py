"""
Standardized exception hierarchy for the personalfit engine
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class PersonalFitError(Exception):
    """
    Base exception for all personalfit errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise PersonalFitError(
            message="Failed to credit completion",
            user_id="user-1",
            operation="credit_completion",
            context={"event_id": "session-42"}
        )
    """

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # 'message' is reserved by logging
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for callers"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors
# ==========================================

class ValidationError(PersonalFitError):
    """
    Raised when caller input fails validation

    Example:
        raise ValidationError(
            message="Analysis window must be at least 1 day, got 0",
            field="days",
            value=0,
            user_id="user-1"
        )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


# ==========================================
# Database Errors
# ==========================================

class DatabaseError(PersonalFitError):
    """
    Base class for database-related errors
    """
    pass


class ConnectionError(DatabaseError):
    """Database connection failed"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble connecting to the database. Please try again in a moment.",
            **kwargs
        )


class QueryError(DatabaseError):
    """Database query execution failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        context = kwargs.pop("context", None) or {}
        context.setdefault("query", query)
        super().__init__(
            message=message,
            user_message="We encountered an issue saving your data. Please try again.",
            context=context,
            **kwargs
        )


class RecordNotFoundError(DatabaseError):
    """Requested database record does not exist"""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        context = kwargs.pop("context", None) or {}
        context.update({"record_type": record_type, "record_id": record_id})
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context=context,
            **kwargs
        )


# ==========================================
# Concurrency Errors
# ==========================================

class StaleStateError(Exception):
    """
    A single optimistic-update precondition failed.

    Raised inside one attempt of a read-compute-write cycle and consumed by
    the retry loop. Deliberately not a PersonalFitError: it is not logged on
    creation and never reaches callers.
    """

    def __init__(self, user_id: str, expected_version: int):
        super().__init__(f"State for user {user_id} changed since version {expected_version}")
        self.user_id = user_id
        self.expected_version = expected_version


class ConcurrencyConflictError(PersonalFitError):
    """Optimistic update retries exhausted; caller should try again"""

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        attempts: int = 0,
        **kwargs
    ):
        self.event_id = event_id
        self.attempts = attempts
        context = kwargs.pop("context", None) or {}
        context.update({"event_id": event_id, "attempts": attempts})
        super().__init__(
            message=message,
            user_message="Your progress is being updated by another request. Please try again.",
            context=context,
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(PersonalFitError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> PersonalFitError:
    """
    Wrap external exceptions (psycopg) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate PersonalFitError subclass

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="upsert_correlations",
                user_id="user-1",
            )
    """
    import psycopg

    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Database connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    return PersonalFitError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )

"""
Custom Exception Classes for the ATS Match Service
"""
from typing import Dict, Any


class MatchServiceError(Exception):
    """Base exception for the match service"""

    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class InvalidRequestError(MatchServiceError):
    """Raised when a match request is malformed or names an unknown operation"""

    status_code = 400

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="INVALID_REQUEST", details=details, **kwargs)


class NotFoundError(MatchServiceError):
    """Raised when a referenced candidate, job or match does not exist"""

    status_code = 404

    def __init__(self, message: str, resource: str = None, resource_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        if resource_id:
            details['resource_id'] = resource_id
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


class DatabaseError(MatchServiceError):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ConfigurationError(MatchServiceError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class ExternalServiceError(MatchServiceError):
    """Raised when the scoring gateway is unreachable or answers with a failure status"""

    status_code = 502

    def __init__(self, message: str, service_name: str = None, status_code: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if service_name:
            details['service_name'] = service_name
        if status_code:
            details['status_code'] = status_code
        super().__init__(message, error_code="EXTERNAL_SERVICE_ERROR", details=details, **kwargs)


class ScoringOutputError(MatchServiceError):
    """Raised when the gateway answers but its structured payload cannot be used"""

    status_code = 502

    def __init__(self, message: str, tool_name: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if tool_name:
            details['tool_name'] = tool_name
        super().__init__(message, error_code="SCORING_OUTPUT_ERROR", details=details, **kwargs)


def error_body(exc: MatchServiceError) -> Dict[str, Any]:
    """Response payload for a service error; `error` always carries the message"""
    return {
        "error": exc.message,
        "error_code": exc.error_code,
        "details": exc.details,
    }


# Exception context manager for store operations
class ExceptionContext:
    """Wraps driver failures raised inside the block into DatabaseError"""

    def __init__(self, operation: str, logger=None, collection: str = None, **context):
        self.operation = operation
        self.logger = logger
        self.collection = collection
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        # Service errors already carry their meaning
        if isinstance(exc_val, MatchServiceError):
            return False

        raise DatabaseError(
            f"Database error in {self.operation}: {str(exc_val)}",
            operation=self.operation,
            collection=self.collection,
            details=dict(self.context),
            cause=exc_val
        ) from exc_val

from __future__ import annotations


class RecipeAppError(Exception):
    pass


class ConfigurationError(RecipeAppError):
    def __init__(self, errors: list[str]):
        super().__init__(f"Configuration errors: {', '.join(errors)}")
        self.errors = errors


class GatewayError(RecipeAppError):
    pass


class AuthenticationError(GatewayError):
    def __init__(self, message: str = "Authentication failed", code: str | None = None):
        super().__init__(message)
        self.code = code


class PermissionDeniedError(GatewayError):
    def __init__(self, operation: str, reason: str = "Denied by access policy"):
        super().__init__(f"Permission denied during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class RecordNotFoundError(GatewayError):
    def __init__(self, table: str, record_id: str):
        super().__init__(f"Record not found in {table}: {record_id}")
        self.table = table
        self.record_id = record_id


class DuplicateRecordError(GatewayError):
    def __init__(self, table: str, reason: str = "Duplicate key"):
        super().__init__(f"Duplicate record in {table}: {reason}")
        self.table = table
        self.reason = reason


class GatewayUnavailableError(GatewayError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Backend unavailable during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class UploadError(GatewayError):
    def __init__(self, object_key: str, reason: str = "Upload failed"):
        super().__init__(f"Failed to upload {object_key}: {reason}")
        self.object_key = object_key
        self.reason = reason


class OperationTimeoutError(RecipeAppError):
    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(f"{operation} timed out after {timeout_seconds}s")
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class ValidationError(RecipeAppError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class EmptyContentError(ValidationError):
    def __init__(self, field: str = "content"):
        super().__init__(f"{field.capitalize()} cannot be empty", field=field)


class NotSignedInError(RecipeAppError):
    def __init__(self, message: str = "Please sign in to continue."):
        super().__init__(message)

"""
Domain exceptions for the CRM RBAC engine.

This module defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns.
"""

from typing import Any


class CrmRbacException(Exception):
    """
    Base exception for all RBAC engine errors.

    All custom exceptions should inherit from this class to allow
    for consistent error handling and logging.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class UnauthorizedException(CrmRbacException):
    """Raised when no principal, or a malformed principal, is presented."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, "UNAUTHORIZED")


class PermissionDeniedError(CrmRbacException):
    """Permission denied - principal lacks required permission."""

    def __init__(
        self,
        message: str = "Permission denied",
        permission: str | None = None,
        resource: str | None = None,
    ):
        details: dict[str, Any] = {}
        if permission:
            details["permission"] = permission
        if resource:
            details["resource"] = resource
        super().__init__(message, "PERMISSION_DENIED", details)


class ResourceNotFoundException(CrmRbacException):
    """
    Raised when a requested resource is not found.

    Also raised when the resource exists but lives outside the caller's
    tenant scope; the message is identical in both cases.
    """

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ValidationException(CrmRbacException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        invalid: list[str] | None = None,
    ):
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if invalid:
            details["invalid"] = invalid
        super().__init__(message, "VALIDATION_ERROR", details)


class ImmutableResourceError(CrmRbacException):
    """Raised on an attempt to mutate a protected resource (system role, audit entry)."""

    def __init__(self, resource_type: str, resource_id: str | None, reason: str):
        super().__init__(
            f"{resource_type} is immutable: {reason}",
            "IMMUTABLE_RESOURCE",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ResourceInUseError(CrmRbacException):
    """Raised when deletion is blocked by active references."""

    def __init__(self, resource_type: str, resource_id: str, references: int):
        super().__init__(
            f"{resource_type} {resource_id} is still referenced by {references} assignment(s)",
            "RESOURCE_IN_USE",
            {
                "resource_type": resource_type,
                "resource_id": resource_id,
                "references": references,
            },
        )


class ConflictError(CrmRbacException):
    """Raised when a concurrent writer modified the resource first."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        details: dict[str, Any] = {"resource_type": resource_type, "resource_id": resource_id}
        if expected_version is not None:
            details["expected_version"] = expected_version
        if actual_version is not None:
            details["actual_version"] = actual_version
        super().__init__(
            f"{resource_type} {resource_id} was modified by another writer",
            "CONFLICT",
            details,
        )


class AuditWriteError(CrmRbacException):
    """Raised when the audit entry for a privileged mutation cannot be written."""

    def __init__(self, action: str, resource_id: str | None, reason: str):
        super().__init__(
            f"Audit write failed for {action}; the change was rolled back",
            "AUDIT_WRITE_FAILED",
            {"action": action, "resource_id": resource_id, "reason": reason},
        )

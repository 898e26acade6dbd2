#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
NSP Patcher - Consolidated Exception Classes

This module contains all exception classes used in the project,
centralized in one place so every stage of the patch pipeline raises
the same family of errors.
"""

from datetime import datetime
from typing import Dict, Any, Iterable, List, Optional


class BaseError(Exception):
    """Base class for all project-specific errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code or "ERROR"
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Converts the exception to a dictionary for structured logging."""
        return {
            'error_code': self.error_code,
            'message': str(self),
            'details': self.details,
            'timestamp': self.timestamp.isoformat()
        }


# =====================================================================================================
# Input validation errors
# =====================================================================================================

class ValidationError(BaseError):
    """Raised when an input has the wrong shape (wrong extension, unknown content type)."""

    def __init__(self, message: str, path: Optional[str] = None,
                 field_name: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        validation_details = details or {}
        if path:
            validation_details['path'] = str(path)
        if field_name:
            validation_details['field_name'] = field_name
        super().__init__(message, "VALIDATION_ERROR", validation_details)


class NotFoundError(BaseError):
    """Raised when a required ticket, content unit or tool cannot be located."""

    def __init__(self, message: str, path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        lookup_details = details or {}
        if path:
            lookup_details['path'] = str(path)
        super().__init__(message, "NOT_FOUND", lookup_details)


# =====================================================================================================
# Configuration errors
# =====================================================================================================

class ConfigurationError(BaseError):
    """Raised when the configuration file cannot be read or validated."""

    def __init__(self, message: str, file_path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        config_details = details or {}
        if file_path:
            config_details['file_path'] = str(file_path)
        super().__init__(message, "CONFIG_ERROR", config_details)


# =====================================================================================================
# IO and external process errors
# =====================================================================================================

class FileOperationError(BaseError):
    """Raised when a filesystem operation fails."""

    def __init__(self, message: str, file_path: Optional[str] = None,
                 operation: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        file_details = details or {}
        if file_path:
            file_details['file_path'] = str(file_path)
        if operation:
            file_details['operation'] = operation
        super().__init__(message, "FILE_OP_ERROR", file_details)


class ExternalToolError(BaseError):
    """Raised when an external capability (hactool, hacpack) exits unsuccessfully."""

    def __init__(self, message: str, tool: Optional[str] = None,
                 command: Optional[str] = None,
                 exit_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        tool_details = details or {}
        if tool:
            tool_details['tool'] = tool
        if command:
            tool_details['command'] = command
        if exit_code is not None:
            tool_details['exit_code'] = exit_code
        super().__init__(message, "TOOL_ERROR", tool_details)
        self.exit_code = exit_code


# =====================================================================================================
# Pipeline errors
# =====================================================================================================

class InternalInvariantError(BaseError):
    """Raised when a precondition that should always hold is violated."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INTERNAL_ERROR", details)


class AggregateError(BaseError):
    """Several independent failures reported together."""

    def __init__(self, errors: Iterable[BaseException],
                 details: Optional[Dict[str, Any]] = None):
        self.errors: List[BaseException] = list(errors)
        message = "\n".join(str(err) for err in self.errors)
        agg_details = details or {}
        agg_details['count'] = len(self.errors)
        super().__init__(message, "AGGREGATE_ERROR", agg_details)

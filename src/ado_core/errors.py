"""Error taxonomy for Azure DevOps access.

Every condition a caller can observe is a DevOpsError subclass carrying the
identifiers needed to render a precise message. None of them embeds field
values of a work item, so a rendered error never leaks blocked content.
"""
import asyncio
from typing import Optional, Union


class DevOpsError(Exception):
    """Base class for all errors raised by ado_core."""


class PolicyBlockedError(DevOpsError):
    """Raised when a work item's type is in the configured block-set."""

    def __init__(self, work_item_id: int, work_item_type: str):
        super().__init__(
            f'Access to work item #{work_item_id} of type "{work_item_type}" is blocked by GDPR policy. '
            f"This work item type may contain personal data and cannot be accessed through this API."
        )
        self.work_item_id = work_item_id
        self.work_item_type = work_item_type


class MalformedRecordError(DevOpsError):
    """Raised when the backend returned a work item missing required parts."""

    def __init__(self, message: str, work_item_id: Optional[int] = None):
        super().__init__(message)
        self.work_item_id = work_item_id


class NotFoundError(DevOpsError):
    def __init__(self, resource_type: str, resource_id: Union[str, int]):
        super().__init__(f"{resource_type} with ID {resource_id} not found.")
        self.resource_type = resource_type
        self.resource_id = resource_id


class AuthenticationError(DevOpsError):
    def __init__(self, message: str = "Authentication failed. Please check your PAT and permissions."):
        super().__init__(message)


class PermissionDeniedError(DevOpsError):
    def __init__(self, resource: str):
        super().__init__(f"Insufficient permissions to access {resource}.")
        self.resource = resource


class FileTooLargeError(DevOpsError):
    """Raised before any content is fetched for a file above the size ceiling."""

    def __init__(self, file_path: str, file_size: int, max_size: int):
        super().__init__(
            f'File "{file_path}" size ({file_size} bytes) exceeds the maximum allowed size ({max_size} bytes). '
            f"Please use a Git client to retrieve large files."
        )
        self.file_path = file_path
        self.file_size = file_size
        self.max_size = max_size


class ConfigurationError(DevOpsError):
    def __init__(self, message: str, missing_config: Optional[str] = None):
        super().__init__(message)
        self.missing_config = missing_config


class OperationCancelledError(DevOpsError):
    """Raised when the caller's abort signal fired before the operation finished."""

    def __init__(self, operation: str):
        super().__init__(f"Operation {operation} was cancelled before it completed.")
        self.operation = operation


class BackendError(DevOpsError):
    """Wrapped backend failure that does not map to a more specific condition."""

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.url = url


_PASSTHROUGH_ERRORS = (
    PolicyBlockedError,
    MalformedRecordError,
    NotFoundError,
    AuthenticationError,
    PermissionDeniedError,
    FileTooLargeError,
    ConfigurationError,
    OperationCancelledError,
)


def sanitize_error(error: BaseException) -> str:
    """Render an error as a caller-visible message.

    Known conditions keep their own message; anything else is wrapped so the
    caller sees the message but never a traceback.
    """
    if isinstance(error, _PASSTHROUGH_ERRORS):
        return str(error)
    if isinstance(error, Exception):
        return f"An error occurred: {error}"
    return "An unknown error occurred."


def raise_if_aborted(abort: Optional[asyncio.Event], operation: str) -> None:
    """Raise OperationCancelledError once the caller's abort signal is set."""
    if abort is not None and abort.is_set():
        raise OperationCancelledError(operation)

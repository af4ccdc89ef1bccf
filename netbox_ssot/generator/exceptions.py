"""Custom exceptions for the NetBox SSoT."""

from typing import Any, Mapping, Optional

from netbox_ssot.base import ContentTypeStr, FieldName, Uid


class NetBoxSsotException(Exception):
    """Base exception for the netbox_ssot package."""

    issue_type = ""


class ConfigurationError(NetBoxSsotException):
    """Raised when the configuration can't be loaded or is invalid."""


class TransientIOError(NetBoxSsotException):
    """Raised when the CMDB is unreachable or keeps failing after all retries."""

    issue_type = "TransientIOError"


class CmdbRequestError(NetBoxSsotException):
    """Raised when the CMDB rejects a request."""

    issue_type = "RequestFailed"

    def __init__(self, method: str, url: str, status_code: int, body: str = ""):
        """Initialize the exception."""
        super().__init__(f"{method} {url} failed with status {status_code}: {body}")
        self.method = method
        self.url = url
        self.status_code = status_code
        self.body = body


class CreateConflict(NetBoxSsotException):
    """Raised when the CMDB rejects a create because the natural key already exists."""

    issue_type = "CreateConflict"


class DanglingReference(NetBoxSsotException):
    """Raised when a relation value doesn't point to any indexed entity."""

    issue_type = "DanglingReference"

    def __init__(self, content_type: ContentTypeStr, field_name: FieldName, value: Any):
        """Initialize the exception."""
        super().__init__(f"{content_type}.{field_name}: no entity found for `{value}`")
        self.content_type = content_type
        self.field_name = field_name
        self.value = value


class UnresolvedRelation(NetBoxSsotException):
    """Raised when a relation rule matched a label that isn't in the index."""

    issue_type = "UnresolvedRelation"

    def __init__(self, name: str, label: str, content_type: ContentTypeStr):
        """Initialize the exception."""
        super().__init__(f"`{name}` matched `{label}`, but there is no {content_type} with that name")
        self.name = name
        self.label = label
        self.content_type = content_type


class PartialDeleteFailure(NetBoxSsotException):
    """Raised by the orphan sweep when some deletions failed."""

    issue_type = "DeleteFailed"

    def __init__(self, content_type: ContentTypeStr, failures: Mapping[Uid, Exception], total: int):
        """Initialize the exception."""
        super().__init__(f"{content_type}: failed to delete {len(failures)} of {total} orphans")
        self.content_type = content_type
        self.failures = dict(failures)
        self.total = total

    @property
    def all_failed(self) -> bool:
        """Check if no deletion succeeded."""
        return len(self.failures) == self.total


class IndexLoadError(NetBoxSsotException):
    """Raised when the CMDB snapshot can't be loaded."""

    def __init__(self, content_type: ContentTypeStr, error: Optional[Exception] = None):
        """Initialize the exception."""
        message = f"Failed to load {content_type}"
        if error:
            message += f": {error}"
        super().__init__(message)
        self.content_type = content_type

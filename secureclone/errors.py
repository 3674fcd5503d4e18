"""Error taxonomy for secure-clone."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    CONFIGURATION = "configuration"
    CREDENTIAL = "credential"
    PERMISSION = "permission"
    CONFLICT = "conflict"
    NETWORK = "network"
    REPOSITORY = "repository"


class SecureCloneError(Exception):
    """
    Base class for every error raised by secure-clone.

    Carries a machine-readable error code, a category, the diagnostic context
    (reference, name, URL) and an optional operator hint. The message and
    context never contain credential values.
    """

    category = ErrorCategory.REPOSITORY
    default_code = "SECURE_CLONE_ERROR"
    exit_code = 1
    fatal = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = context or {}
        self.hint = hint

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to dictionary format."""
        result = {
            "error": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.hint:
            result["hint"] = self.hint
        return result


class ConfigurationError(SecureCloneError):
    """No reference supplied, a malformed reference, or invalid settings."""
    category = ErrorCategory.CONFIGURATION
    default_code = "CONFIGURATION_ERROR"
    exit_code = 2
    fatal = True


class CredentialError(SecureCloneError):
    """No token could be obtained from the token file or the environment."""
    category = ErrorCategory.CREDENTIAL
    default_code = "NO_CREDENTIAL"
    exit_code = 3
    fatal = True


class WorkspacePermissionError(SecureCloneError, PermissionError):
    """The repos root cannot be created or written."""
    category = ErrorCategory.PERMISSION
    default_code = "REPOS_ROOT_NOT_WRITABLE"
    exit_code = 4
    fatal = True


class LockTimeoutError(SecureCloneError):
    """Another synchronizer holds the repos root lock."""
    category = ErrorCategory.PERMISSION
    default_code = "REPOS_ROOT_LOCKED"
    exit_code = 4
    fatal = True


class ConflictError(SecureCloneError):
    """Destination occupied by unrelated content and reclone was not requested."""
    category = ErrorCategory.CONFLICT
    default_code = "DESTINATION_CONFLICT"


class NetworkError(SecureCloneError):
    """Clone or fetch failed in transport."""
    category = ErrorCategory.NETWORK
    default_code = "TRANSPORT_FAILED"


class RepositoryError(SecureCloneError):
    """A local git operation (checkout, remote setup) failed."""
    category = ErrorCategory.REPOSITORY
    default_code = "LOCAL_GIT_FAILED"


def format_error(error: SecureCloneError) -> str:
    """Render an error as a single diagnostic line for stderr and the log file."""
    parts = [f"{error.category.value} error [{error.error_code}]: {error.message}"]

    details = ", ".join(
        f"{key}={value}" for key, value in error.context.items() if value not in (None, "")
    )
    if details:
        parts.append(f"({details})")

    if error.hint:
        parts.append(f"hint: {error.hint}")

    return " ".join(parts)

"""Failure kinds for git command errors."""

from dataclasses import dataclass
from enum import Enum


class GitFailureKind(Enum):
    """What a failed git command most likely ran into."""
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    REPOSITORY_ACCESS = "repository_access"
    BRANCH = "branch"
    LOCAL_CHANGES = "local_changes"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorResolution:
    """Operator-facing explanation for a failure kind."""
    kind: GitFailureKind
    user_message: str
    hint: str

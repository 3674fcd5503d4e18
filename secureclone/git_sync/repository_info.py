"""Repository reference and working tree state data structures."""

from dataclasses import dataclass
from enum import Enum


class WorkingTreeState(Enum):
    """On-disk state of a destination directory under the repos root."""
    ABSENT = "absent"                                            # Missing, or an empty directory
    PRESENT_NON_GIT = "present-non-git"                          # Non-empty, no .git
    PRESENT_GIT_MATCHING_ORIGIN = "present-git-matching-origin"
    PRESENT_GIT_MISMATCHED_ORIGIN = "present-git-mismatched-origin"


class SyncOutcome(Enum):
    """Terminal outcome of a successful synchronization."""
    CLONED = "cloned"
    UPDATED = "updated"
    RECLONED = "recloned"


@dataclass(frozen=True)
class ResolvedRepo:
    """A repository reference resolved to a clone URL and a directory name."""
    url: str
    name: str
    branch: str
    reference: str = ""

    def context(self) -> dict:
        """Diagnostic context attached to errors about this repository."""
        return {
            "reference": self.reference or self.url,
            "name": self.name,
            "url": self.url,
            "branch": self.branch,
        }

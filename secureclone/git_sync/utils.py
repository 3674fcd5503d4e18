"""Result types for repository synchronization."""

from dataclasses import dataclass, field
from typing import List, Optional

from .repository_info import ResolvedRepo, SyncOutcome, WorkingTreeState


@dataclass
class SyncResult:
    """Result of synchronizing one repository."""
    success: bool
    message: str
    operation: str
    repository: Optional[ResolvedRepo] = None
    outcome: Optional[SyncOutcome] = None
    state_before: Optional[WorkingTreeState] = None
    error_code: Optional[str] = None
    error_category: Optional[str] = None
    branch_used: Optional[str] = None
    pull_warning: Optional[str] = None


def create_sync_result(
    success: bool,
    message: str,
    operation: str,
    repository: Optional[ResolvedRepo] = None,
    outcome: Optional[SyncOutcome] = None,
    state_before: Optional[WorkingTreeState] = None,
    error_code: Optional[str] = None,
    error_category: Optional[str] = None,
    branch_used: Optional[str] = None,
    pull_warning: Optional[str] = None
) -> SyncResult:
    """
    Helper function to create SyncResult instances.

    Args:
        success: Whether the operation was successful
        message: Descriptive message about the operation result
        operation: Name of the operation that was performed
        repository: The resolved repository the result is about
        outcome: Terminal outcome for successful operations
        state_before: Working tree state detected before acting
        error_code: Optional error code for failed operations
        error_category: Optional error category for failed operations
        branch_used: Branch checked out after the operation
        pull_warning: Non-fatal fast-forward failure message, if any

    Returns:
        SyncResult instance with all fields populated
    """
    return SyncResult(
        success=success,
        message=message,
        operation=operation,
        repository=repository,
        outcome=outcome,
        state_before=state_before,
        error_code=error_code,
        error_category=error_category,
        branch_used=branch_used,
        pull_warning=pull_warning
    )


@dataclass
class SyncRunResult:
    """Aggregated results of one synchronizer run, in processing order."""
    results: List[SyncResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)

    @property
    def succeeded(self) -> List[SyncResult]:
        return [result for result in self.results if result.success]

    @property
    def failed(self) -> List[SyncResult]:
        return [result for result in self.results if not result.success]

    def summary(self) -> str:
        return f"{len(self.succeeded)} succeeded, {len(self.failed)} failed"

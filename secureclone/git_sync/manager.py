"""Repository synchronizer: per-destination state machine over resolved references."""

import logging
from pathlib import Path
from typing import Iterable, Optional

from git import GitCommandError
from git.exc import GitError

from ..config import Config
from ..errors import ConflictError, RepositoryError, SecureCloneError, format_error
from .clone import clone_to_staging, install_clone
from .credentials import AskpassHandle
from .error_strategies import describe_git_error
from .git_config import mark_safe_directory
from .repository_info import ResolvedRepo, SyncOutcome, WorkingTreeState
from .remote_utils import redact_url
from .repository_sync import update_existing_repository
from .state import inspect_working_tree
from .utils import SyncResult, SyncRunResult, create_sync_result


class RepositorySynchronizer:
    """
    Brings each destination <repos_root>/<name> into a clean git state.

    | state                    | force_reclone | action                         |
    |--------------------------|---------------|--------------------------------|
    | absent (or empty dir)    | any           | clone                          |
    | non-git, non-empty       | False         | ConflictError, nothing touched |
    | non-git, non-empty       | True          | clone, replace contents        |
    | git, origin matches      | any           | set-url, fetch, checkout, pull |
    | git, origin mismatched   | False         | ConflictError, nothing touched |
    | git, origin mismatched   | True          | clone, replace contents        |

    Clones are staged next to the destination and only moved into place once
    complete, so a failed clone never disturbs the destination.
    """

    def __init__(self, config: Config, askpass: AskpassHandle, mark_safe: bool = True):
        """
        Initialize the synchronizer.

        Args:
            config: Run configuration
            askpass: Live askpass handle supplying per-call git environments
            mark_safe: Record each synchronized directory in safe.directory
        """
        self.config = config
        self.askpass = askpass
        self.mark_safe = mark_safe
        self.logger = logging.getLogger('secureclone.sync')

    def sync(self, resolved: ResolvedRepo, repos_root: Path, force_reclone: bool = False) -> SyncResult:
        """
        Synchronize one repository.

        Per-reference errors are returned as a failed SyncResult, never raised.
        """
        destination = repos_root / resolved.name
        state_before: Optional[WorkingTreeState] = None

        self.logger.info(f"Processing '{resolved.reference or resolved.url}' -> {destination}")

        try:
            state_before, origin_url = inspect_working_tree(destination, resolved)
            self.logger.debug(f"{destination} is {state_before.value}")

            if state_before == WorkingTreeState.PRESENT_GIT_MATCHING_ORIGIN:
                # git refuses clones owned by another uid until they are marked safe
                self._mark_safe(destination)
                rule, pull_warning = update_existing_repository(
                    resolved, destination, self.askpass.environment_for(resolved.url)
                )
                outcome = SyncOutcome.UPDATED
                message = f"Updated '{resolved.name}' on branch '{resolved.branch}' ({rule})"
            else:
                if state_before != WorkingTreeState.ABSENT and not force_reclone:
                    raise self._conflict(resolved, destination, state_before, origin_url)

                staging = clone_to_staging(resolved, repos_root, self.askpass.environment_for(resolved.url))
                if state_before != WorkingTreeState.ABSENT:
                    self.logger.warning(
                        f"Replacing contents of {destination} ({state_before.value}) because GIT_FORCE_RECLONE=1"
                    )
                install_clone(staging, destination)
                self._mark_safe(destination)

                pull_warning = None
                outcome = SyncOutcome.CLONED if state_before == WorkingTreeState.ABSENT else SyncOutcome.RECLONED
                verb = "Cloned" if outcome == SyncOutcome.CLONED else "Re-cloned"
                message = f"{verb} '{resolved.name}' from {resolved.url} on branch '{resolved.branch}'"

            self.logger.info(message)
            return create_sync_result(
                success=True,
                message=message,
                operation="sync_repository",
                repository=resolved,
                outcome=outcome,
                state_before=state_before,
                branch_used=resolved.branch,
                pull_warning=pull_warning
            )

        except SecureCloneError as e:
            return self._failure(resolved, state_before, e)
        except GitCommandError as e:
            return self._failure(resolved, state_before, RepositoryError(
                describe_git_error(e), error_code="GIT_COMMAND_ERROR", context=resolved.context()
            ))
        except GitError as e:
            return self._failure(resolved, state_before, RepositoryError(
                f"Repository error: {e}", error_code="GIT_ERROR", context=resolved.context()
            ))
        except OSError as e:
            return self._failure(resolved, state_before, RepositoryError(
                f"Filesystem error: {e}", error_code="FILESYSTEM_ERROR", context=resolved.context()
            ))

    def sync_all(
        self,
        repos: Iterable[ResolvedRepo],
        repos_root: Optional[Path] = None,
        force_reclone: Optional[bool] = None
    ) -> SyncRunResult:
        """Synchronize every repository in order; one failure never stops the rest.

        repos_root and force_reclone default to the configured values.
        """
        repos_root = repos_root if repos_root is not None else self.config.repos_root
        force_reclone = self.config.force_reclone if force_reclone is None else force_reclone

        run = SyncRunResult()
        for resolved in repos:
            run.results.append(self.sync(resolved, repos_root, force_reclone))
        return run

    def _mark_safe(self, destination: Path) -> None:
        if self.mark_safe:
            mark_safe_directory(destination)

    def _conflict(
        self,
        resolved: ResolvedRepo,
        destination: Path,
        state: WorkingTreeState,
        origin_url: Optional[str]
    ) -> ConflictError:
        context = resolved.context()
        context["destination"] = str(destination)
        if state == WorkingTreeState.PRESENT_GIT_MISMATCHED_ORIGIN:
            context["existing_origin"] = redact_url(origin_url)
            return ConflictError(
                f"Existing repository at {destination} has a different origin",
                error_code="ORIGIN_MISMATCH",
                context=context,
                hint="set GIT_FORCE_RECLONE=1 to replace it",
            )
        return ConflictError(
            f"{destination} is not empty and is not a git repository",
            error_code="DESTINATION_NOT_EMPTY",
            context=context,
            hint="set GIT_FORCE_RECLONE=1 to replace its contents",
        )

    def _failure(
        self,
        resolved: ResolvedRepo,
        state_before: Optional[WorkingTreeState],
        error: SecureCloneError
    ) -> SyncResult:
        self.logger.error(format_error(error))
        return create_sync_result(
            success=False,
            message=error.message,
            operation="sync_repository",
            repository=resolved,
            state_before=state_before,
            error_code=error.error_code,
            error_category=error.category.value
        )

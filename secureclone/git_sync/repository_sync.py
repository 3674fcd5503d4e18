"""Fast-forward update of an existing clone."""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from git import Repo, GitCommandError

from ..errors import NetworkError, RepositoryError
from .branch_utils import checkout_branch, get_current_local_branch, get_tracking_branch
from .error_strategies import classify_git_error, describe_git_error
from .remote_utils import ensure_origin
from .repository_info import ResolvedRepo


def update_existing_repository(
    resolved: ResolvedRepo,
    git_repo_dir: Path,
    env: Dict[str, str]
) -> Tuple[str, Optional[str]]:
    """
    Bring an existing clone up to date with its remote.

    This function performs the following operations:
    1. Points origin at the resolved URL (idempotent)
    2. Fetches all remotes with pruning
    3. Checks out the requested branch (local, then tracking, then new)
    4. Fast-forwards from origin; a failed fast-forward is only a warning

    Args:
        resolved: Repository being synchronized
        git_repo_dir: Existing working tree whose origin matches
        env: Child-process environment carrying the askpass settings

    Returns:
        Tuple of (branch rule applied, pull warning or None)

    Raises:
        NetworkError: If the fetch fails
        RepositoryError: If origin cannot be configured or the checkout fails
    """
    logger = logging.getLogger('secureclone.sync.repository_sync')
    repo = Repo(git_repo_dir)

    try:
        try:
            ensure_origin(repo, resolved.url)
        except GitCommandError as e:
            raise RepositoryError(
                f"Cannot configure origin: {describe_git_error(e)}",
                error_code="ORIGIN_SETUP_FAILED",
                context=resolved.context(),
            )

        with repo.git.custom_environment(**env):
            logger.debug("Fetching all remotes with prune")
            try:
                repo.git.fetch("--all", "--prune")
            except GitCommandError as e:
                resolution = classify_git_error(e)
                raise NetworkError(
                    f"{resolution.user_message}: {describe_git_error(e)}",
                    error_code=f"FETCH_{resolution.kind.value.upper()}",
                    context=resolved.context(),
                    hint=resolution.hint,
                )

            current = get_current_local_branch(repo)
            if current != resolved.branch:
                logger.info(f"Switching '{resolved.name}' from {current or 'detached HEAD'} to '{resolved.branch}'")

            try:
                rule = checkout_branch(repo, resolved.branch)
            except GitCommandError as e:
                resolution = classify_git_error(e)
                raise RepositoryError(
                    f"Cannot check out branch '{resolved.branch}': {describe_git_error(e)}",
                    error_code="CHECKOUT_FAILED",
                    context=resolved.context(),
                    hint=resolution.hint,
                )

            pull_warning = None
            try:
                repo.git.pull("--ff-only", "origin", resolved.branch)
            except GitCommandError as e:
                pull_warning = describe_git_error(e)
                logger.warning(
                    f"Fast-forward of '{resolved.name}' to origin/{resolved.branch} failed, "
                    f"keeping current tree: {pull_warning}"
                )

        tracking = get_tracking_branch(repo, resolved.branch)
        logger.debug(f"Branch '{resolved.branch}' ({rule}) tracks {tracking or 'nothing'}")
        return rule, pull_warning
    finally:
        repo.close()

"""Branch utilities for repository synchronization using GitPython."""

import logging
from typing import Optional

from git import Repo, GitCommandError


def check_local_branch_exists(repo: Repo, branch_name: str) -> bool:
    """Check if a branch exists in the local repository."""
    return branch_name in [head.name for head in repo.heads]


def check_remote_branch_exists(repo: Repo, branch_name: str, remote_name: str = "origin") -> bool:
    """Check if a remote-tracking ref exists (after the last fetch; no network access)."""
    if remote_name not in repo.remotes:
        return False
    return f"{remote_name}/{branch_name}" in [ref.name for ref in repo.remotes[remote_name].refs]


def get_current_local_branch(repo: Repo) -> Optional[str]:
    """Get the current local branch name, or None on a detached or unborn HEAD."""
    logger = logging.getLogger('secureclone.sync.branch_utils')

    try:
        return repo.active_branch.name
    except TypeError:
        # Detached HEAD
        return None
    except (ValueError, GitCommandError) as e:
        logger.debug(f"Error getting current local branch: {e}")
        return None


def get_tracking_branch(repo: Repo, branch_name: str) -> Optional[str]:
    """Return the upstream of a local branch (e.g. 'origin/main'), or None."""
    for head in repo.heads:
        if head.name == branch_name:
            tracking = head.tracking_branch()
            return tracking.name if tracking is not None else None
    return None


def checkout_branch(repo: Repo, branch_name: str, remote_name: str = "origin") -> str:
    """
    Check out branch_name on an existing clone.

    Resolution order keeps local work first:
    1. a local branch of that name is checked out as-is
    2. otherwise a local branch is created tracking <remote>/<branch>
    3. otherwise a new local branch is created from HEAD

    Returns:
        Which rule applied: "local", "tracking" or "new"

    Raises:
        GitCommandError: If the checkout itself fails (e.g. a dirty tree blocks it)
    """
    logger = logging.getLogger('secureclone.sync.branch_utils')

    if check_local_branch_exists(repo, branch_name):
        logger.debug(f"Checking out existing local branch '{branch_name}'")
        repo.heads[branch_name].checkout()
        return "local"

    if check_remote_branch_exists(repo, branch_name, remote_name):
        logger.debug(f"Creating local branch '{branch_name}' tracking {remote_name}/{branch_name}")
        remote_ref = repo.remotes[remote_name].refs[branch_name]
        new_branch = repo.create_head(branch_name, remote_ref)
        new_branch.set_tracking_branch(remote_ref)
        new_branch.checkout()
        return "tracking"

    logger.debug(f"Branch '{branch_name}' not found locally or on {remote_name}; creating it")
    repo.git.checkout("-b", branch_name)
    return "new"

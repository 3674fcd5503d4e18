"""Working tree state detection for destination directories."""

import logging
from pathlib import Path
from typing import Optional, Tuple

from git import Repo, InvalidGitRepositoryError, NoSuchPathError

from .remote_utils import get_origin_url, origin_matches
from .repository_info import ResolvedRepo, WorkingTreeState


def is_git_working_tree(path: Path) -> bool:
    """
    A directory carrying usable version-control metadata (.git directory or gitfile).

    A .git entry that GitPython cannot open (empty, truncated, dangling gitfile)
    does not count.
    """
    if not (path / ".git").exists():
        return False

    try:
        repo = Repo(path)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return False
    repo.close()
    return True


def is_empty_directory(path: Path) -> bool:
    return path.is_dir() and not any(path.iterdir())


def inspect_working_tree(path: Path, resolved: ResolvedRepo) -> Tuple[WorkingTreeState, Optional[str]]:
    """
    Classify a destination directory and return its origin URL when it is a repository.

    A missing path or an empty directory is ABSENT. A non-directory at the
    path, or a directory whose .git cannot be opened, counts as
    PRESENT_NON_GIT so it is never silently replaced.
    """
    logger = logging.getLogger('secureclone.sync.state')

    if not path.exists() and not path.is_symlink():
        return WorkingTreeState.ABSENT, None

    if not path.is_dir() or path.is_symlink():
        logger.debug(f"{path} exists and is not a directory")
        return WorkingTreeState.PRESENT_NON_GIT, None

    if is_empty_directory(path):
        return WorkingTreeState.ABSENT, None

    if not is_git_working_tree(path):
        if (path / ".git").exists():
            logger.warning(f"{path / '.git'} is not a readable git repository; treating {path} as non-git")
        return WorkingTreeState.PRESENT_NON_GIT, None

    origin_url = get_origin_url(path)
    if origin_matches(origin_url, resolved.url, resolved.name):
        return WorkingTreeState.PRESENT_GIT_MATCHING_ORIGIN, origin_url

    logger.debug(f"Origin {origin_url} of {path} does not match {resolved.url}")
    return WorkingTreeState.PRESENT_GIT_MISMATCHED_ORIGIN, origin_url


def detect_working_tree_state(path: Path, resolved: ResolvedRepo) -> WorkingTreeState:
    """Detect the WorkingTreeState of path for the given repository."""
    state, _ = inspect_working_tree(path, resolved)
    return state

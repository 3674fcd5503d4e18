"""Repository cloning using GitPython, staged so a failed clone leaves nothing behind."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict

from git import Repo, GitCommandError

from ..errors import NetworkError
from .error_strategies import classify_git_error, describe_git_error
from .repository_info import ResolvedRepo


def clear_directory(path: Path) -> None:
    """Remove everything inside path, dotfiles included, keeping path itself."""
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def clone_to_staging(resolved: ResolvedRepo, repos_root: Path, env: Dict[str, str]) -> Path:
    """
    Clone resolved.url at resolved.branch into a fresh staging directory under repos_root.

    The staging directory sits next to the destination so the final move stays
    on one filesystem. It is removed on any failure.

    Returns:
        Path of the staging directory holding a complete clone

    Raises:
        NetworkError: If git clone fails
    """
    logger = logging.getLogger('secureclone.sync.clone')

    staging = Path(tempfile.mkdtemp(prefix=f".{resolved.name}.", suffix=".clone", dir=str(repos_root)))
    logger.info(f"Cloning {resolved.url} (branch {resolved.branch})")

    try:
        repo = Repo.clone_from(resolved.url, str(staging), env=env, branch=resolved.branch)
        repo.close()
    except GitCommandError as e:
        shutil.rmtree(staging, ignore_errors=True)
        resolution = classify_git_error(e)
        raise NetworkError(
            f"{resolution.user_message}: {describe_git_error(e)}",
            error_code=f"CLONE_{resolution.kind.value.upper()}",
            context=resolved.context(),
            hint=resolution.hint,
        )
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    return staging


def install_clone(staging: Path, destination: Path) -> None:
    """
    Move a staged clone into place, replacing whatever occupies destination.

    An existing destination directory is emptied and reused rather than
    replaced, so bind-mounted destinations keep working.
    """
    logger = logging.getLogger('secureclone.sync.clone')

    if destination.is_symlink() or (destination.exists() and not destination.is_dir()):
        logger.debug(f"Removing non-directory at {destination}")
        destination.unlink()

    if not destination.exists():
        staging.rename(destination)
        return

    clear_directory(destination)
    for child in staging.iterdir():
        child.rename(destination / child.name)
    staging.rmdir()

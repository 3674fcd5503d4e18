"""Global git configuration: set-if-unset defaults and safe.directory entries."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import git
from git import GitCommandError

from ..config import Config


def _global_values(git_cmd: git.Git, key: str) -> List[str]:
    """All global values of key; git exits 1 when the key is unset."""
    try:
        output = git_cmd.config("--global", "--get-all", key)
    except GitCommandError as e:
        if e.status == 1:
            return []
        raise
    return [line for line in output.splitlines() if line]


def apply_global_defaults(settings: Dict[str, str], git_cmd: Optional[git.Git] = None) -> List[str]:
    """
    Set each global git setting that is not already set.

    Empty values are skipped and existing values are never overwritten.
    Failures are logged and do not stop the remaining settings.

    Returns:
        Keys that were written
    """
    logger = logging.getLogger('secureclone.git_config')
    git_cmd = git_cmd or git.Git()
    written = []

    for key, value in settings.items():
        if not value:
            continue
        try:
            if _global_values(git_cmd, key):
                continue
            git_cmd.config("--global", key, value)
            written.append(key)
        except GitCommandError as e:
            logger.warning(f"Failed to set git {key}: exit status {e.status}")

    if written:
        logger.info(f"Configured global git settings: {', '.join(written)}")
    return written


def mark_safe_directory(path: Union[Path, str], git_cmd: Optional[git.Git] = None) -> bool:
    """
    Add path to the global safe.directory list unless it is already there.

    Returns:
        True if an entry was added
    """
    logger = logging.getLogger('secureclone.git_config')
    git_cmd = git_cmd or git.Git()
    entry = str(path)

    try:
        if entry in _global_values(git_cmd, "safe.directory"):
            return False
        git_cmd.config("--global", "--add", "safe.directory", entry)
        logger.debug(f"Marked {entry} as a safe directory")
        return True
    except GitCommandError as e:
        logger.warning(f"Failed to mark {entry} as a safe directory: exit status {e.status}")
        return False


def configure_global_git(config: Config, git_cmd: Optional[git.Git] = None) -> None:
    """Apply the configured global defaults (unless disabled) and record the safe directories."""
    git_cmd = git_cmd or git.Git()
    if config.configure_git:
        apply_global_defaults(config.git_defaults, git_cmd)
    for entry in config.safe_directory_entries:
        mark_safe_directory(entry, git_cmd)

"""Platform helpers for secure-clone."""

import os
import platform
from pathlib import Path
from typing import Optional, Tuple, Union

import git
from git.exc import GitCommandNotFound


def is_posix() -> bool:
    """Check if running on a POSIX system, where the askpass helper is a shell script."""
    return os.name == "posix" and platform.system().lower() != "windows"


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Normalize a path for the current platform.

    Args:
        path: Path to normalize

    Returns:
        Normalized Path object
    """
    if isinstance(path, str):
        path = Path(path)

    # Expand user home directory (~) first, then resolve to absolute path
    return path.expanduser().resolve()


def default_askpass_dir() -> Optional[Path]:
    """
    Directory for the transient askpass helper.

    The home directory is preferred because /tmp is often mounted noexec in
    hardened containers. None means the system temporary directory.
    """
    try:
        home = Path.home()
    except RuntimeError:
        return None

    if home.is_dir() and os.access(home, os.W_OK | os.X_OK):
        return home
    return None


def validate_git_availability() -> Tuple[bool, Optional[str]]:
    """
    Validate that the git executable can be run.

    Returns:
        Tuple of (is_available, error_message)
    """
    try:
        version = git.Git().version_info
    except GitCommandNotFound:
        return False, "git executable not found on PATH"
    except git.GitCommandError as e:
        return False, f"git --version failed: {e}"

    if not version:
        return False, "git --version returned no version information"
    return True, None

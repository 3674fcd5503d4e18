"""Classification of git command failures into operator hints."""

import logging
from typing import Dict

from git import GitCommandError

from .error_types import ErrorResolution, GitFailureKind


def build_error_resolutions() -> Dict[GitFailureKind, ErrorResolution]:
    """Build the operator message and hint for each failure kind."""
    return {
        GitFailureKind.NETWORK: ErrorResolution(
            kind=GitFailureKind.NETWORK,
            user_message="Could not reach the remote repository",
            hint="check network access to the git host and re-run",
        ),
        GitFailureKind.AUTHENTICATION: ErrorResolution(
            kind=GitFailureKind.AUTHENTICATION,
            user_message="Authentication failed",
            hint="verify the token has read access to the repository, or override GIT_USERNAME",
        ),
        GitFailureKind.REPOSITORY_ACCESS: ErrorResolution(
            kind=GitFailureKind.REPOSITORY_ACCESS,
            user_message="Repository not found or not accessible",
            hint="check the reference, GIT_PROVIDER and GIT_HOST",
        ),
        GitFailureKind.BRANCH: ErrorResolution(
            kind=GitFailureKind.BRANCH,
            user_message="Requested branch does not exist on the remote",
            hint="set GIT_BRANCH to an existing branch",
        ),
        GitFailureKind.LOCAL_CHANGES: ErrorResolution(
            kind=GitFailureKind.LOCAL_CHANGES,
            user_message="Local changes block the operation",
            hint="commit or stash local changes, or set GIT_FORCE_RECLONE=1 to replace the clone",
        ),
        GitFailureKind.UNKNOWN: ErrorResolution(
            kind=GitFailureKind.UNKNOWN,
            user_message="git command failed",
            hint="see the git output above",
        ),
    }


def build_error_patterns() -> Dict[str, GitFailureKind]:
    """Build mapping of git stderr patterns to failure kinds, checked in order."""
    return {
        # Branch errors
        "remote branch": GitFailureKind.BRANCH,
        "couldn't find remote ref": GitFailureKind.BRANCH,
        "not found in upstream": GitFailureKind.BRANCH,

        # Authentication errors
        "authentication failed": GitFailureKind.AUTHENTICATION,
        "could not read username": GitFailureKind.AUTHENTICATION,
        "could not read password": GitFailureKind.AUTHENTICATION,
        "invalid username or password": GitFailureKind.AUTHENTICATION,
        "permission denied": GitFailureKind.AUTHENTICATION,
        "error: 403": GitFailureKind.AUTHENTICATION,
        "error: 401": GitFailureKind.AUTHENTICATION,

        # Repository access errors
        "repository not found": GitFailureKind.REPOSITORY_ACCESS,
        "does not appear to be a git repository": GitFailureKind.REPOSITORY_ACCESS,
        "does not exist": GitFailureKind.REPOSITORY_ACCESS,
        "returned error: 404": GitFailureKind.REPOSITORY_ACCESS,

        # Network errors
        "could not resolve host": GitFailureKind.NETWORK,
        "connection refused": GitFailureKind.NETWORK,
        "connection timed out": GitFailureKind.NETWORK,
        "operation too slow": GitFailureKind.NETWORK,
        "network is unreachable": GitFailureKind.NETWORK,
        "failed to connect": GitFailureKind.NETWORK,
        "ssl certificate": GitFailureKind.NETWORK,
        "ssl_connect": GitFailureKind.NETWORK,
        "ssl connect error": GitFailureKind.NETWORK,

        # Local state
        "would be overwritten": GitFailureKind.LOCAL_CHANGES,
        "please commit your changes or stash them": GitFailureKind.LOCAL_CHANGES,
    }


_RESOLUTIONS = build_error_resolutions()
_PATTERNS = build_error_patterns()


def classify_git_error(error: Exception) -> ErrorResolution:
    """Pick the operator explanation for a failed git command."""
    logger = logging.getLogger('secureclone.sync.error_strategies')

    if isinstance(error, GitCommandError):
        text = f"{error.stderr or ''} {error.stdout or ''}".lower()
    else:
        text = str(error).lower()

    for pattern, kind in _PATTERNS.items():
        if pattern in text:
            logger.debug(f"Classified git error as {kind.value}: pattern '{pattern}' found")
            return _RESOLUTIONS[kind]

    return _RESOLUTIONS[GitFailureKind.UNKNOWN]


def describe_git_error(error: Exception) -> str:
    """Short, single-line description of a git failure (first meaningful stderr line)."""
    if isinstance(error, GitCommandError):
        lines = [
            line.strip() for line in (error.stderr or "").splitlines()
            if line.strip() and line.strip() not in ("stderr:", "'")
        ]
        detail = lines[-1] if lines else ""
        if detail.startswith("stderr:"):
            detail = detail[len("stderr:"):].strip()
        detail = detail.strip("'").strip() or f"exit status {error.status}"
        return f"git {_verb(error)} failed: {detail}"
    return str(error)


def _verb(error: GitCommandError) -> str:
    command = error.command if isinstance(error.command, (list, tuple)) else str(error.command).split()
    for part in command[1:]:
        if not str(part).startswith("-"):
            return str(part)
    return "command"

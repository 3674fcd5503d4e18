"""Remote (origin) utilities for repository synchronization."""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .resolver import is_absolute_url


def origin_matches(origin_url: Optional[str], expected_url: str, expected_name: str) -> bool:
    """
    Decide whether an existing origin belongs to the requested repository.

    This is a substring heuristic, not URL equality: the origin matches when it
    contains either the expected directory name or the expected URL. Token
    embedding and scheme differences therefore never count as a mismatch.
    A same-named repository from another owner also passes; only an origin
    mentioning neither the name nor the URL is flagged.
    A missing origin counts as a match; the update path configures it.
    """
    if not origin_url:
        return True
    return expected_name in origin_url or expected_url in origin_url


def redact_url(url: Optional[str]) -> Optional[str]:
    """Drop the password part of a credential-embedding URL before it is logged."""
    if not url or not is_absolute_url(url):
        return url

    parts = urlsplit(url)
    if parts.password is None:
        return url

    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    if parts.username:
        netloc = f"{parts.username}:***@{netloc}"
    return urlunsplit(parts._replace(netloc=netloc))


def get_origin_url(git_repo_dir: Path) -> Optional[str]:
    """Return the URL of the origin remote, or None if there is none."""
    logger = logging.getLogger('secureclone.sync.remote_utils')

    try:
        repo = Repo(git_repo_dir)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        logger.debug(f"Not a git repository: {git_repo_dir}: {e}")
        return None

    try:
        if "origin" not in repo.remotes:
            return None
        return repo.remotes.origin.url
    except (GitCommandError, ValueError) as e:
        logger.debug(f"Error reading origin URL in {git_repo_dir}: {e}")
        return None
    finally:
        repo.close()


def ensure_origin(repo: Repo, url: str) -> None:
    """Point origin at url, creating the remote when it is missing."""
    logger = logging.getLogger('secureclone.sync.remote_utils')

    if "origin" in repo.remotes:
        if repo.remotes.origin.url != url:
            logger.debug(f"Setting origin URL to {url}")
        repo.remotes.origin.set_url(url)
    else:
        logger.info(f"Repository has no origin remote; adding {url}")
        repo.create_remote("origin", url)

"""
Credential broker for git operations.

The token is read from a mounted secret file (or, with a warning, from the
GIT_TOKEN environment variable) and handed to git only through a transient
askpass helper. The helper script holds no secret: it echoes values that are
placed in the environment of the individual git child process. Nothing is
put on a command line, written to git configuration, or exported into the
orchestrator's own environment.
"""

import logging
import os
import stat
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional

from ..config import Config
from ..errors import CredentialError
from ..platform import default_askpass_dir, is_posix
from .resolver import AZURE_URL_MARKERS


GITHUB_USERNAME = "x-access-token"
AZURE_USERNAME = "azdo"

ASKPASS_SCRIPT = """#!/bin/sh
case "$1" in
  *Username*|*username*) printf '%s\\n' "$GIT_USERNAME_VALUE" ;;
  *) printf '%s\\n' "$GIT_TOKEN" ;;
esac
"""

logger = logging.getLogger('secureclone.credentials')


@dataclass(frozen=True)
class Credential:
    """A bearer token plus the optional username override."""
    token: str = field(repr=False)
    username: Optional[str] = None
    source: str = "file"

    def username_for(self, url: str) -> str:
        """Username to answer for a URL: the override, else the provider default."""
        if self.username:
            return self.username
        if any(marker in url for marker in AZURE_URL_MARKERS):
            return AZURE_USERNAME
        return GITHUB_USERNAME


def materialize_credential(config: Config) -> Credential:
    """
    Obtain the token from the token file, falling back to GIT_TOKEN.

    Raises:
        CredentialError: If neither source yields a token, or the token file
            exists but cannot be read
    """
    token_file = config.git_token_file

    if token_file.is_file():
        try:
            token = token_file.read_text(encoding="utf-8").replace("\r", "").replace("\n", "")
        except (OSError, UnicodeDecodeError) as e:
            raise CredentialError(
                f"Cannot read token file {token_file}: {type(e).__name__}",
                error_code="TOKEN_FILE_UNREADABLE",
                context={"token_file": str(token_file)},
            )
        if token.strip():
            logger.info(f"Using git token from file {token_file}")
            return Credential(token=token.strip(), username=config.git_username, source="file")
        logger.warning(f"Token file {token_file} is empty")

    if config.git_token:
        logger.warning(
            "Using git token from the GIT_TOKEN environment variable; "
            "a mounted token file is safer"
        )
        return Credential(token=config.git_token, username=config.git_username, source="environment")

    raise CredentialError(
        "No git token provided",
        context={"token_file": str(token_file)},
        hint="mount a secret at GIT_TOKEN_FILE (default /run/secrets/git_token) or set GIT_TOKEN",
    )


class AskpassHandle:
    """
    A live askpass helper on disk plus the credential it serves.

    Use through install_askpass(); close() removes the helper and forgets the token.
    """

    def __init__(self, credential: Credential, path: Path, low_speed_time: int = 60):
        self._credential: Optional[Credential] = credential
        self.path = path
        self.low_speed_time = low_speed_time

    @property
    def active(self) -> bool:
        return self._credential is not None

    def environment_for(self, url: str) -> Dict[str, str]:
        """
        Environment overrides for one git child process.

        Stored credential helpers are disabled through GIT_CONFIG_COUNT so that
        nothing on argv and nothing in a config file carries credentials.
        """
        if self._credential is None:
            raise CredentialError("Askpass helper already closed", error_code="ASKPASS_CLOSED")

        env = {
            "GIT_ASKPASS": str(self.path),
            "GIT_TOKEN": self._credential.token,
            "GIT_USERNAME_VALUE": self._credential.username_for(url),
            "GIT_TERMINAL_PROMPT": "0",
            "GCM_INTERACTIVE": "never",
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "credential.helper",
            "GIT_CONFIG_VALUE_0": "",
        }
        if self.low_speed_time:
            env["GIT_HTTP_LOW_SPEED_LIMIT"] = "1"
            env["GIT_HTTP_LOW_SPEED_TIME"] = str(self.low_speed_time)
        return env

    def close(self) -> None:
        """Remove the helper file and drop the credential."""
        self._credential = None
        try:
            self.path.unlink()
            logger.debug(f"Removed askpass helper {self.path}")
        except FileNotFoundError:
            pass


@contextmanager
def install_askpass(
    credential: Credential,
    temp_dir: Optional[Path] = None,
    low_speed_time: int = 60
) -> Iterator[AskpassHandle]:
    """
    Write the askpass helper and yield a handle; the helper is removed on every exit path.

    Args:
        credential: Credential to serve
        temp_dir: Directory for the helper; defaults to the home directory
        low_speed_time: Seconds of stalled transfer before git aborts (0 disables)

    Raises:
        CredentialError: If the helper cannot be created
    """
    if not is_posix():
        raise CredentialError(
            "The askpass helper requires a POSIX shell",
            error_code="ASKPASS_UNSUPPORTED_PLATFORM",
        )

    directory = temp_dir or default_askpass_dir()
    try:
        fd, raw_path = tempfile.mkstemp(prefix="git-askpass-", dir=str(directory) if directory else None)
    except OSError as e:
        raise CredentialError(
            f"Cannot create askpass helper: {e}",
            error_code="ASKPASS_CREATE_FAILED",
            context={"directory": str(directory) if directory else tempfile.gettempdir()},
        )

    handle = AskpassHandle(credential, Path(raw_path), low_speed_time=low_speed_time)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(ASKPASS_SCRIPT)
        os.chmod(raw_path, stat.S_IRWXU)
        logger.debug(f"Installed askpass helper {raw_path}")
        yield handle
    finally:
        handle.close()

"""
Command-line entry point for secure-clone.

Resolves the configured repository references, obtains the git token,
synchronizes every repository under the repos root and optionally replaces
itself with a follow-on command.
"""

import logging
import os
import signal
import sys
import tempfile
import time
from pathlib import Path
from typing import List, Optional

from .config import Config, load_configuration, validate_configuration
from .errors import ConfigurationError, SecureCloneError, WorkspacePermissionError, format_error
from .file_lock import RootLock
from .git_sync import (
    RepositorySynchronizer,
    SyncRunResult,
    configure_global_git,
    install_askpass,
    materialize_credential,
    resolve_references,
)
from .platform import validate_git_availability

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%dT%H:%M:%SZ'
EXIT_INTERRUPTED = 130
EXIT_TERMINATED = 143


class StructuredFormatter(logging.Formatter):
    """UTC formatter that prefixes records carrying an ``operation`` extra."""

    converter = time.gmtime

    def format(self, record):
        if hasattr(record, 'operation'):
            record.msg = f"[{record.operation}] {record.msg}"
            del record.operation
        return super().format(record)


class TokenRedactingFilter(logging.Filter):
    """Replace registered secrets with *** in messages and tracebacks."""

    def __init__(self):
        super().__init__()
        self._secrets: List[str] = []

    def add_secret(self, secret: Optional[str]) -> None:
        if secret and secret not in self._secrets:
            self._secrets.append(secret)

    def redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, "***")
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True

        record.msg = self.redact(record.getMessage())
        record.args = None
        if record.exc_info:
            record.exc_text = self.redact(logging.Formatter().formatException(record.exc_info))
            record.exc_info = None
        return True


def setup_logging(config: Config) -> TokenRedactingFilter:
    """
    Attach stderr and log-file handlers to the ``secureclone`` logger.

    Handlers from a previous call are closed and replaced. The returned
    filter is installed on every handler; secrets registered with it never
    reach stderr or the log file.
    """
    logger = logging.getLogger('secureclone')
    logger.setLevel(getattr(logging, config.log_level))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = StructuredFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    redactor = TokenRedactingFilter()

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error = None
    try:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file, mode='a', encoding='utf-8'))
    except OSError as e:
        file_error = e

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redactor)
        logger.addHandler(handler)

    if file_error is not None:
        logger.warning(f"Cannot open log file {config.log_file}: {file_error}; logging to stderr only")

    return redactor


def prepare_repos_root(repos_root: Path) -> None:
    """
    Create the repos root and prove it is writable.

    Raises:
        WorkspacePermissionError: If the directory cannot be created or written
    """
    try:
        repos_root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryFile(dir=repos_root, prefix=".secure-clone-probe-"):
            pass
    except OSError as e:
        raise WorkspacePermissionError(
            f"Repos root {repos_root} is not writable: {e.strerror or e}",
            context={"repos_root": str(repos_root)},
            hint="fix the ownership of the mounted workspace or set TARGET_DIR",
        )


def synchronize(config: Config, redactor: TokenRedactingFilter) -> SyncRunResult:
    """
    Run one synchronization pass over every configured reference.

    Fatal errors (configuration, credential, permission, lock) are raised;
    per-reference failures are reported in the returned result.
    """
    logger = logging.getLogger('secureclone.cli')

    available, git_error = validate_git_availability()
    if not available:
        raise ConfigurationError(git_error, error_code="GIT_NOT_AVAILABLE", hint="install git in the image")

    repos = resolve_references(config)
    credential = materialize_credential(config)
    redactor.add_secret(credential.token)

    repos_root = config.repos_root
    prepare_repos_root(repos_root)

    with RootLock(config.lock_file, timeout=config.lock_timeout):
        configure_global_git(config)

        logger.info(f"Synchronizing {len(repos)} repositories into {repos_root}")
        with install_askpass(credential, config.askpass_dir, config.low_speed_time) as askpass:
            synchronizer = RepositorySynchronizer(config, askpass)
            run = synchronizer.sync_all(repos, repos_root, config.force_reclone)

    for result in run.failed:
        logger.warning(f"Failed: {result.repository.name if result.repository else '?'}: {result.message}")
    logger.info(f"Synchronization complete: {run.summary()}")
    return run


def _raise_terminated(signum, frame):
    raise SystemExit(EXIT_TERMINATED)


def exec_command(command: List[str]) -> int:
    """
    Replace this process with command, without GIT_TOKEN in its environment.

    Only returns when the command cannot be started.
    """
    logger = logging.getLogger('secureclone.cli')
    env = dict(os.environ)
    env.pop("GIT_TOKEN", None)

    logger.info(f"Executing follow-on command: {command[0]}")
    for handler in logging.getLogger('secureclone').handlers:
        handler.flush()

    try:
        os.execvpe(command[0], command, env)
    except OSError as e:
        logger.error(f"Cannot execute {command[0]}: {e.strerror or e}")
        return 127
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Positional arguments form an optional follow-on command that is executed
    once synchronization finishes. With a command and no configured
    references, synchronization is skipped.

    Returns:
        Process exit code
    """
    command = list(sys.argv[1:] if argv is None else argv)
    if command and command[0] == "--":
        command = command[1:]

    # Startup logging until the configuration is known
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    logger = logging.getLogger('secureclone.cli')

    previous_handler = None
    try:
        previous_handler = signal.signal(signal.SIGTERM, _raise_terminated)
    except ValueError:
        # Not in the main thread; leave signal handling alone
        pass

    try:
        try:
            config = load_configuration()
        except ValueError as e:
            raise ConfigurationError(str(e), error_code="INVALID_SETTING")

        redactor = setup_logging(config)
        logger.info("secure-clone starting")
        for warning in validate_configuration(config):
            logger.warning(warning)

        if command and not config.has_references:
            logger.info("No repository references configured; skipping synchronization")
            exit_code = 0
        else:
            run = synchronize(config, redactor)
            exit_code = 0 if run.success else 1

    except SecureCloneError as e:
        logger.error(format_error(e))
        return e.exit_code
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGTERM, previous_handler)

    if command:
        if exit_code != 0:
            logger.warning("Some repositories failed to synchronize; continuing with the follow-on command")
        return exec_command(command)

    return exit_code


if __name__ == "__main__":
    sys.exit(main())

"""Configuration management for secure-clone."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv

from .platform import normalize_path


DEFAULT_TOKEN_FILE = "/run/secrets/git_token"
DEFAULT_PROJECT_DIR = "/workspace"
DEFAULT_BRANCH = "main"

# Global git settings applied only when not already set: (config key, env var, default)
GIT_DEFAULT_SETTINGS = (
    ("user.name", "GIT_USER_NAME", ""),
    ("user.email", "GIT_USER_EMAIL", ""),
    ("credential.useHttpPath", "GIT_CREDENTIAL_USE_HTTP_PATH", "true"),
    ("fetch.prune", "GIT_FETCH_PRUNE", "true"),
    ("pull.rebase", "GIT_PULL_REBASE", "false"),
    ("rebase.autoStash", "GIT_REBASE_AUTOSTASH", "true"),
    ("init.defaultBranch", "GIT_DEFAULT_BRANCH", "main"),
    ("push.default", "GIT_PUSH_DEFAULT", "simple"),
    ("color.ui", "GIT_COLOR_UI", "auto"),
    ("core.autocrlf", "GIT_CORE_AUTOCRLF", "false"),
    ("core.filemode", "GIT_CORE_FILEMODE", "false"),
    ("log.date", "GIT_LOG_DATE", "iso"),
)

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Immutable run configuration, built once at startup."""

    # Repository references
    git_url: Optional[str] = None
    git_repo: Optional[str] = None
    git_repos: Optional[str] = None
    git_provider: Optional[str] = None
    git_host: Optional[str] = None
    git_branch: str = DEFAULT_BRANCH

    # Credentials
    git_username: Optional[str] = None
    git_token_file: Path = Path(DEFAULT_TOKEN_FILE)
    git_token: Optional[str] = field(default=None, repr=False)
    askpass_dir: Optional[Path] = None

    # Workspace
    project_dir: Path = Path(DEFAULT_PROJECT_DIR)
    target_dir: Optional[str] = None
    force_reclone: bool = False
    lock_timeout: float = 30.0
    low_speed_time: int = 60

    # Global git settings
    configure_git: bool = True
    git_defaults: Dict[str, str] = field(default_factory=dict)
    safe_directories: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file_name: str = "secure-clone.log"

    def __post_init__(self):
        """Validate configuration after initialization."""
        object.__setattr__(self, "project_dir", normalize_path(self.project_dir))
        object.__setattr__(self, "git_token_file", Path(self.git_token_file).expanduser())
        if self.askpass_dir is not None:
            object.__setattr__(self, "askpass_dir", normalize_path(self.askpass_dir))

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}")
        object.__setattr__(self, "log_level", self.log_level.upper())

        if not self.git_branch or not self.git_branch.strip():
            raise ValueError("git_branch must not be empty")

        if self.lock_timeout < 0:
            raise ValueError("lock_timeout must be non-negative")

        if self.low_speed_time < 0:
            raise ValueError("low_speed_time must be non-negative")

        if not self.log_file_name or "/" in self.log_file_name:
            raise ValueError(f"Invalid log file name: {self.log_file_name!r}")

    @property
    def repos_root(self) -> Path:
        """Directory under which every repository is synchronized."""
        if self.target_dir:
            target = Path(self.target_dir).expanduser()
            if target.is_absolute():
                return normalize_path(target)
            return normalize_path(self.project_dir / target)
        return self.project_dir / "repos"

    @property
    def safe_directory_entries(self) -> List[str]:
        """
        Global safe.directory entries recorded before synchronization.

        GIT_SAFE_DIRECTORIES (space-separated, globs such as <dir>/* allowed)
        replaces the default of the project directory, the repos root and
        every directory below the repos root.
        """
        if self.safe_directories:
            return self.safe_directories.split()
        return [str(self.project_dir), str(self.repos_root), f"{self.repos_root}/*"]

    @property
    def log_file(self) -> Path:
        """Append-only diagnostic log under the project directory."""
        return self.project_dir / self.log_file_name

    @property
    def lock_file(self) -> Path:
        """Advisory lock guarding the repos root."""
        return self.repos_root / ".secure-clone.lock"

    @property
    def has_references(self) -> bool:
        return bool(self.git_url or self.git_repo or self.git_repos)


def _env(environ: Mapping[str, str], name: str) -> Optional[str]:
    """Return a stripped environment value, treating blanks as unset."""
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_flag(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = _env(environ, name)
    if value is None:
        return default
    return value.lower() in TRUE_VALUES


def load_configuration(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Load configuration from environment variables.

    When ``environ`` is omitted, a ``.env`` file in the working directory is
    loaded first and ``os.environ`` is read. Nothing reads the environment
    after this point.
    """
    if environ is None:
        load_dotenv(dotenv_path=Path.cwd() / ".env")
        environ = os.environ

    try:
        git_defaults = {}
        for key, env_name, default in GIT_DEFAULT_SETTINGS:
            raw = environ.get(env_name)
            git_defaults[key] = raw.strip() if raw is not None else default

        askpass_dir = _env(environ, "SECURE_CLONE_ASKPASS_DIR")

        return Config(
            git_url=_env(environ, "GIT_URL"),
            git_repo=_env(environ, "GIT_REPO"),
            git_repos=_env(environ, "GIT_REPOS"),
            git_provider=_env(environ, "GIT_PROVIDER"),
            git_host=_env(environ, "GIT_HOST"),
            git_branch=_env(environ, "GIT_BRANCH") or DEFAULT_BRANCH,
            git_username=_env(environ, "GIT_USERNAME"),
            git_token_file=Path(_env(environ, "GIT_TOKEN_FILE") or DEFAULT_TOKEN_FILE),
            git_token=_env(environ, "GIT_TOKEN"),
            askpass_dir=Path(askpass_dir) if askpass_dir else None,
            project_dir=Path(_env(environ, "PROJECT_DIR") or DEFAULT_PROJECT_DIR),
            target_dir=_env(environ, "TARGET_DIR"),
            force_reclone=_env_flag(environ, "GIT_FORCE_RECLONE"),
            lock_timeout=float(_env(environ, "SECURE_CLONE_LOCK_TIMEOUT") or 30.0),
            low_speed_time=int(_env(environ, "SECURE_CLONE_LOW_SPEED_TIME") or 60),
            configure_git=_env_flag(environ, "SECURE_CLONE_CONFIGURE_GIT", default=True),
            git_defaults=git_defaults,
            safe_directories=_env(environ, "GIT_SAFE_DIRECTORIES"),
            log_level=(_env(environ, "SECURE_CLONE_LOG_LEVEL") or "INFO").upper(),
            log_file_name=_env(environ, "SECURE_CLONE_LOG_FILE") or "secure-clone.log",
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Return warnings about configuration that is accepted but questionable."""
    warnings = []

    if config.git_token and config.git_token_file.is_file():
        warnings.append("WARNING: both GIT_TOKEN and a token file are present; the token file wins")

    if config.git_url and config.git_url.startswith("http://"):
        warnings.append(f"WARNING: GIT_URL uses plain http, credentials would travel unencrypted: {config.git_url}")

    if config.git_host and "/" in config.git_host:
        warnings.append(f"WARNING: GIT_HOST should be a bare host name: {config.git_host}")

    if config.lock_timeout == 0:
        warnings.append("WARNING: SECURE_CLONE_LOCK_TIMEOUT is 0, a held lock fails immediately")

    return warnings

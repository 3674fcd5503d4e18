"""Secure multi-repository clone and update for secure-clone."""

from .credentials import AskpassHandle, Credential, install_askpass, materialize_credential
from .git_config import apply_global_defaults, configure_global_git, mark_safe_directory
from .manager import RepositorySynchronizer
from .remote_utils import origin_matches
from .repository_info import ResolvedRepo, SyncOutcome, WorkingTreeState
from .resolver import resolve, resolve_references, split_references
from .state import detect_working_tree_state
from .utils import SyncResult, SyncRunResult, create_sync_result

__all__ = [
    'AskpassHandle',
    'Credential',
    'install_askpass',
    'materialize_credential',
    'apply_global_defaults',
    'configure_global_git',
    'mark_safe_directory',
    'RepositorySynchronizer',
    'origin_matches',
    'ResolvedRepo',
    'SyncOutcome',
    'WorkingTreeState',
    'resolve',
    'resolve_references',
    'split_references',
    'detect_working_tree_state',
    'SyncResult',
    'SyncRunResult',
    'create_sync_result'
]

"""
secure-clone - Secure multi-repository git clone and update.

Clones or updates every configured repository under a workspace directory,
handing the git token to git only through a transient askpass helper.
"""

__version__ = "1.0.0"
__description__ = "Secure multi-repository git clone and update orchestrator"

from .cli import main

__all__ = ["main"]

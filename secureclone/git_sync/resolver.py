"""Resolution of operator-supplied repository references to clone URLs."""

import logging
import re
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from ..config import Config, DEFAULT_BRANCH
from ..errors import ConfigurationError
from .repository_info import ResolvedRepo


DEFAULT_HOST = "github.com"
AZURE_HOST = "dev.azure.com"
AZURE_PROVIDER_ALIASES = {"azure", "ado", "azure-devops", "azuredevops", "azdo"}
AZURE_URL_MARKERS = ("dev.azure.com", "visualstudio.com")

_ABSOLUTE_URL = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_REFERENCE_SEPARATORS = re.compile(r"[,;\s]+")
_QUOTES = "\"'"

logger = logging.getLogger('secureclone.resolver')


def sanitize_reference(value: Optional[str]) -> str:
    """Trim surrounding whitespace and quote characters from a reference."""
    if value is None:
        return ""

    cleaned = value.strip()
    while cleaned and (cleaned[0] in _QUOTES or cleaned[-1] in _QUOTES):
        cleaned = cleaned.strip(_QUOTES).strip()
    return cleaned


def is_absolute_url(reference: str) -> bool:
    """Check if a reference carries a URL scheme (https://, ssh://, file://, ...)."""
    return bool(_ABSOLUTE_URL.match(reference))


def is_azure_provider(provider: Optional[str]) -> bool:
    return (provider or "").strip().lower() in AZURE_PROVIDER_ALIASES


def is_azure_host(host: Optional[str]) -> bool:
    """Check if a host names Azure DevOps (dev.azure.com or a legacy *.visualstudio.com)."""
    host = (host or "").lower()
    return any(marker in host for marker in AZURE_URL_MARKERS)


def split_references(text: Optional[str]) -> List[str]:
    """Split a multi-reference string on commas, semicolons and whitespace runs."""
    if not text:
        return []

    references = []
    for token in _REFERENCE_SEPARATORS.split(text):
        token = sanitize_reference(token)
        if token:
            references.append(token)
    return references


def _normalize_host(host: str) -> str:
    host = sanitize_reference(host)
    if is_absolute_url(host):
        host = urlsplit(host).netloc
    return host.strip("/")


def _normalize_azure_slug(slug: str) -> str:
    """Rewrite org/project/repo as org/project/_git/repo."""
    if "/_git/" in slug:
        return slug

    parts = slug.split("/")
    if len(parts) == 3 and all(parts):
        org, project, repo = parts
        return f"{org}/{project}/_git/{repo}"
    return slug


def _validate_slug(slug: str, reference: str) -> None:
    segments = slug.split("/")
    if len(segments) < 2 or any(segment in ("", ".", "..") for segment in segments):
        raise ConfigurationError(
            f"Malformed repository slug: {reference!r}",
            error_code="MALFORMED_SLUG",
            context={"reference": reference},
            hint="use owner/repo, org/project/repo, or a full https URL",
        )


def build_url(slug: str, provider: Optional[str] = None, host: Optional[str] = None) -> str:
    """
    Synthesize a clone URL from a slug.

    Azure DevOps providers and hosts produce https://<host>/<org>/<project>/_git/<repo>
    (no .git suffix); everything else produces https://<host>/<slug>.git with
    github.com as the default host.
    """
    slug = slug.strip("/")
    _validate_slug(slug, slug)

    if is_azure_provider(provider) or is_azure_host(host):
        target_host = _normalize_host(host) if host else AZURE_HOST
        return f"https://{target_host}/{_normalize_azure_slug(slug)}"

    target_host = _normalize_host(host) if host else DEFAULT_HOST
    if slug.endswith(".git"):
        return f"https://{target_host}/{slug}"
    return f"https://{target_host}/{slug}.git"


def derive_name(url: str) -> str:
    """
    Derive the local directory name for a repository URL or slug.

    The trailing .git is dropped; Azure DevOps style paths use the segment
    after /_git/, everything else the last path segment.
    """
    path = urlsplit(url).path if is_absolute_url(url) else url
    path = path.rstrip("/")
    if path.endswith(".git"):
        path = path[:-len(".git")]

    if "/_git/" in path:
        name = path.split("/_git/", 1)[1]
    else:
        name = path.rsplit("/", 1)[-1]

    # scp-like references (git@host:org/repo) leave the host on a bare name
    if ":" in name and "/" not in name:
        name = name.rsplit(":", 1)[-1]

    name = sanitize_reference(name)
    if not name or name in (".", "..") or any(sep in name for sep in ("/", "\\", "\0")):
        raise ConfigurationError(
            f"Cannot derive a directory name from {url!r}",
            error_code="INVALID_REPOSITORY_NAME",
            context={"url": url, "name": name},
        )
    return name


def resolve(
    reference: str,
    provider: Optional[str] = None,
    host: Optional[str] = None,
    branch: str = DEFAULT_BRANCH
) -> ResolvedRepo:
    """
    Resolve one repository reference.

    Args:
        reference: Slug (owner/repo, org/project/repo, org/project/_git/repo) or absolute URL
        provider: Optional provider alias selecting the Azure DevOps URL shape
        host: Optional host override for slug references
        branch: Branch to check out

    Returns:
        ResolvedRepo with canonical URL and directory name

    Raises:
        ConfigurationError: If the reference is empty or malformed
    """
    cleaned = sanitize_reference(reference)
    if not cleaned:
        raise ConfigurationError(
            "Empty repository reference",
            error_code="EMPTY_REFERENCE",
            context={"reference": reference},
        )

    if is_absolute_url(cleaned):
        url = cleaned
        if urlsplit(url).password:
            logger.warning(
                "Repository URL embeds credentials; prefer GIT_TOKEN_FILE so the secret stays out of git config"
            )
    else:
        url = build_url(cleaned, provider=provider, host=host)

    return ResolvedRepo(url=url, name=derive_name(url), branch=branch, reference=cleaned)


def resolve_references(config: Config) -> List[ResolvedRepo]:
    """
    Resolve every reference in the configuration, in order: GIT_URL, GIT_REPO, GIT_REPOS.

    Identical URLs are processed once. GIT_URL takes precedence over a GIT_REPO
    naming the same directory. Any other pair of different URLs sharing a
    directory name is rejected.

    Raises:
        ConfigurationError: If no reference is supplied or references collide
    """
    sources = []
    if config.git_url:
        sources.append(("GIT_URL", config.git_url))
    if config.git_repo:
        sources.append(("GIT_REPO", config.git_repo))
    for token in split_references(config.git_repos):
        sources.append(("GIT_REPOS", token))

    if not any(sanitize_reference(value) for _, value in sources):
        raise ConfigurationError(
            "No repository reference supplied",
            error_code="NO_REFERENCE",
            hint="set GIT_URL (full URL), GIT_REPO (slug) or GIT_REPOS (list)",
        )

    resolved: List[ResolvedRepo] = []
    origins: Dict[str, str] = {}
    by_name: Dict[str, ResolvedRepo] = {}

    for source, value in sources:
        if not sanitize_reference(value):
            continue

        repo = resolve(value, provider=config.git_provider, host=config.git_host, branch=config.git_branch)

        existing = by_name.get(repo.name)
        if existing is not None:
            if existing.url == repo.url:
                logger.debug(f"Skipping duplicate reference {repo.reference!r} ({repo.url})")
                continue
            if origins[repo.name] == "GIT_URL" and source == "GIT_REPO":
                logger.info(f"GIT_URL takes precedence over GIT_REPO for '{repo.name}'")
                continue
            raise ConfigurationError(
                f"References {existing.reference!r} and {repo.reference!r} both resolve to directory '{repo.name}'",
                error_code="NAME_COLLISION",
                context={"name": repo.name, "url": repo.url, "existing_url": existing.url},
            )

        by_name[repo.name] = repo
        origins[repo.name] = source
        resolved.append(repo)
        logger.debug(f"Resolved {source} reference {repo.reference!r} -> {repo.url} as '{repo.name}'")

    return resolved

#!/usr/bin/env python3
"""
Test reference resolution: URL synthesis, directory names, multi-reference parsing.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

from secureclone.config import Config
from secureclone.errors import ConfigurationError
from secureclone.git_sync.resolver import (
    build_url,
    derive_name,
    resolve,
    resolve_references,
    sanitize_reference,
    split_references,
)


def test_github_slug_defaults():
    """Slugs without provider or host resolve to github.com with a .git suffix."""
    print("Testing GitHub slug defaults")

    for slug, name in [("acme/widgets", "widgets"), ("acme/tools/cli", "cli"), ("a/b", "b")]:
        resolved = resolve(slug)
        assert resolved.url == f"https://github.com/{slug}.git"
        assert resolved.name == name
        assert resolved.branch == "main"
        assert resolved.reference == slug

    # An explicit .git suffix is not doubled
    resolved = resolve("acme/widgets.git")
    assert resolved.url == "https://github.com/acme/widgets.git"
    assert resolved.name == "widgets"
    print("  ✓ github.com URLs and names derived")


def test_azure_slug_shapes():
    """Azure provider aliases insert /_git/ and drop the .git suffix."""
    print("Testing Azure DevOps slug shapes")

    for alias in ["azure", "ADO", "azure-devops", "AzureDevOps", "azdo"]:
        resolved = resolve("contoso/platform/service", provider=alias)
        assert resolved.url == "https://dev.azure.com/contoso/platform/_git/service", alias
        assert resolved.name == "service"

    resolved = resolve("contoso/platform/_git/service", provider="azure")
    assert resolved.url == "https://dev.azure.com/contoso/platform/_git/service"
    assert resolved.name == "service"

    resolved = resolve("contoso/platform/service", provider="azure", host="ado.example.com")
    assert resolved.url == "https://ado.example.com/contoso/platform/_git/service"
    print("  ✓ Azure DevOps URLs normalized")


def test_explicit_host():
    """An explicit host replaces github.com; Azure DevOps hosts select the Azure shape."""
    print("Testing explicit host override")

    assert build_url("team/tool", host="git.example.com") == "https://git.example.com/team/tool.git"
    assert build_url("team/tool", host="https://git.example.com/") == "https://git.example.com/team/tool.git"
    assert build_url("team/tool", provider="gitlab") == "https://github.com/team/tool.git"

    # An Azure DevOps host selects the Azure URL shape without GIT_PROVIDER
    assert build_url("org/project/repo", host="dev.azure.com") == "https://dev.azure.com/org/project/_git/repo"
    assert build_url("org/project/_git/repo", host="https://dev.azure.com/") == \
        "https://dev.azure.com/org/project/_git/repo"
    assert build_url("DefaultCollection/project/repo", host="contoso.visualstudio.com") == \
        "https://contoso.visualstudio.com/DefaultCollection/project/_git/repo"
    resolved = resolve("org/project/repo", host="dev.azure.com")
    assert resolved.url == "https://dev.azure.com/org/project/_git/repo"
    assert resolved.name == "repo"
    print("  ✓ Host override applied")


def test_absolute_urls_used_verbatim():
    """Absolute URLs are never rewritten."""
    print("Testing absolute URLs")

    cases = {
        "https://github.com/acme/widgets.git": "widgets",
        "https://github.com/acme/widgets": "widgets",
        "https://github.com/acme/widgets/": "widgets",
        "https://dev.azure.com/contoso/platform/_git/service": "service",
        "http://git.internal/team/legacy.git": "legacy",
        "file:///srv/git/acme/widgets.git": "widgets",
    }
    for url, name in cases.items():
        resolved = resolve(url, provider="azure", host="ignored.example.com")
        assert resolved.url == url
        assert resolved.name == name, url
    print("  ✓ URLs preserved and names derived")


def test_sanitize_and_split():
    """Whitespace and quote characters are trimmed; separators are commas, semicolons and whitespace."""
    print("Testing reference sanitizing and splitting")

    assert sanitize_reference('  "acme/widgets"  ') == "acme/widgets"
    assert sanitize_reference("'acme/widgets'") == "acme/widgets"
    assert sanitize_reference("\"'acme/widgets'\"") == "acme/widgets"
    assert sanitize_reference("   ") == ""
    assert sanitize_reference(None) == ""

    assert split_references("a/b, c/d;e/f  g/h\n\ti/j") == ["a/b", "c/d", "e/f", "g/h", "i/j"]
    assert split_references(" ,; ,, ") == []
    assert split_references('"a/b","c/d"') == ["a/b", "c/d"]
    assert split_references(None) == []

    assert resolve('  "acme/widgets"\n').url == "https://github.com/acme/widgets.git"
    print("  ✓ References sanitized and split")


def test_malformed_references_rejected():
    """Empty and malformed references raise ConfigurationError."""
    print("Testing malformed references")

    for reference, code in [
        ("", "EMPTY_REFERENCE"),
        ("  ''  ", "EMPTY_REFERENCE"),
        ("widgets", "MALFORMED_SLUG"),
        ("acme//widgets", "MALFORMED_SLUG"),
        ("acme/../widgets", "MALFORMED_SLUG"),
        ("../widgets", "MALFORMED_SLUG"),
    ]:
        with pytest.raises(ConfigurationError) as excinfo:
            resolve(reference)
        assert excinfo.value.error_code == code, reference
        assert excinfo.value.exit_code == 2

    with pytest.raises(ConfigurationError) as excinfo:
        derive_name("https://github.com/")
    assert excinfo.value.error_code == "INVALID_REPOSITORY_NAME"
    print("  ✓ Malformed references rejected")


def test_resolve_references_order_and_dedup():
    """GIT_URL, GIT_REPO, then GIT_REPOS in order, with duplicate URLs processed once."""
    print("Testing reference collection order")

    config = Config(
        git_url="https://github.com/acme/api.git",
        git_repo="acme/widgets",
        git_repos="acme/gadgets, acme/widgets; acme/api",
        git_branch="develop",
    )
    resolved = resolve_references(config)

    assert [repo.name for repo in resolved] == ["api", "widgets", "gadgets"]
    assert all(repo.branch == "develop" for repo in resolved)
    assert resolved[0].url == "https://github.com/acme/api.git"
    print("  ✓ Order kept and duplicates dropped")


def test_git_url_wins_over_git_repo():
    """GIT_URL and GIT_REPO naming the same directory: GIT_URL is used."""
    print("Testing GIT_URL precedence")

    config = Config(git_url="https://git.example.com/mirror/widgets.git", git_repo="acme/widgets")
    resolved = resolve_references(config)

    assert len(resolved) == 1
    assert resolved[0].url == "https://git.example.com/mirror/widgets.git"
    print("  ✓ GIT_URL took precedence")


def test_name_collision_rejected():
    """Different URLs sharing a directory name are a configuration error."""
    print("Testing name collisions")

    config = Config(git_repos="acme/widgets other/widgets")
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_references(config)
    assert excinfo.value.error_code == "NAME_COLLISION"
    assert excinfo.value.context["name"] == "widgets"
    print("  ✓ Collision rejected")


def test_no_reference():
    """No reference at all is a configuration error."""
    print("Testing missing references")

    for config in [Config(), Config(git_repos=" , ; ")]:
        with pytest.raises(ConfigurationError) as excinfo:
            resolve_references(config)
        assert excinfo.value.error_code == "NO_REFERENCE"
    print("  ✓ Missing references rejected")


def test_provider_from_config():
    """Provider and host from the configuration apply to every slug."""
    print("Testing provider from configuration")

    config = Config(git_repos="contoso/platform/service contoso/platform/portal", git_provider="azure")
    resolved = resolve_references(config)

    assert [repo.url for repo in resolved] == [
        "https://dev.azure.com/contoso/platform/_git/service",
        "https://dev.azure.com/contoso/platform/_git/portal",
    ]
    print("  ✓ Provider applied")


def run_all_tests():
    """Run all resolver tests."""
    print("Reference Resolver Test Suite")
    print("=" * 60)

    tests = [
        test_github_slug_defaults,
        test_azure_slug_shapes,
        test_explicit_host,
        test_absolute_urls_used_verbatim,
        test_sanitize_and_split,
        test_malformed_references_rejected,
        test_resolve_references_order_and_dedup,
        test_git_url_wins_over_git_repo,
        test_name_collision_rejected,
        test_no_reference,
        test_provider_from_config,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
            print("  PASSED\n")
        except Exception as e:
            failed += 1
            print(f"  FAILED: {e!r}\n")

    print("=" * 60)
    print(f"Test Results: {passed} passed, {failed} failed")
    return failed == 0


if __name__ == "__main__":
    sys.exit(0 if run_all_tests() else 1)

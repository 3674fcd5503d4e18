#!/usr/bin/env python3
"""
Test configuration loading from the environment and configuration validation.
"""

import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

from secureclone.config import Config, load_configuration, validate_configuration


def test_defaults():
    """An empty environment gives the documented defaults."""
    print("Testing configuration defaults")

    config = load_configuration({})

    assert config.project_dir == Path("/workspace").resolve()
    assert config.repos_root == Path("/workspace").resolve() / "repos"
    assert config.log_file == Path("/workspace").resolve() / "secure-clone.log"
    assert config.lock_file == config.repos_root / ".secure-clone.lock"
    assert config.git_branch == "main"
    assert config.git_token_file == Path("/run/secrets/git_token")
    assert config.git_token is None
    assert config.force_reclone is False
    assert config.configure_git is True
    assert config.log_level == "INFO"
    assert config.lock_timeout == 30.0
    assert config.low_speed_time == 60
    assert config.git_defaults["credential.useHttpPath"] == "true"
    assert config.git_defaults["pull.rebase"] == "false"
    assert config.git_defaults["user.name"] == ""
    assert not config.has_references
    print("  ✓ Defaults applied")


def test_environment_values():
    """Every variable is read, blanks count as unset."""
    print("Testing environment values")

    with tempfile.TemporaryDirectory() as temp_dir:
        config = load_configuration({
            "GIT_URL": " https://github.com/acme/api.git ",
            "GIT_REPO": "acme/widgets",
            "GIT_REPOS": "acme/a acme/b",
            "GIT_PROVIDER": "azure",
            "GIT_HOST": "dev.example.com",
            "GIT_BRANCH": "   ",
            "GIT_USERNAME": "robot",
            "GIT_TOKEN_FILE": f"{temp_dir}/token",
            "GIT_TOKEN": "secret-value",
            "PROJECT_DIR": temp_dir,
            "SECURE_CLONE_LOG_LEVEL": "debug",
            "SECURE_CLONE_LOCK_TIMEOUT": "5",
            "SECURE_CLONE_LOW_SPEED_TIME": "0",
            "SECURE_CLONE_CONFIGURE_GIT": "0",
            "GIT_USER_NAME": "Build Bot",
            "GIT_PULL_REBASE": "",
        })

        assert config.git_url == "https://github.com/acme/api.git"
        assert config.git_repo == "acme/widgets"
        assert config.git_repos == "acme/a acme/b"
        assert config.git_provider == "azure"
        assert config.git_host == "dev.example.com"
        assert config.git_branch == "main"
        assert config.git_username == "robot"
        assert config.git_token_file == Path(temp_dir) / "token"
        assert config.git_token == "secret-value"
        assert config.repos_root == Path(temp_dir).resolve() / "repos"
        assert config.log_level == "DEBUG"
        assert config.lock_timeout == 5.0
        assert config.low_speed_time == 0
        assert config.configure_git is False
        assert config.git_defaults["user.name"] == "Build Bot"
        assert config.git_defaults["pull.rebase"] == ""
        assert config.has_references

        # The token never appears in the configuration's repr
        assert "secret-value" not in repr(config)
        print("  ✓ Environment values read")


def test_force_reclone_flag():
    """GIT_FORCE_RECLONE accepts 1/true/yes/on only."""
    print("Testing GIT_FORCE_RECLONE parsing")

    for value in ["1", "true", "TRUE", "yes", "on"]:
        assert load_configuration({"GIT_FORCE_RECLONE": value}).force_reclone, value
    for value in ["0", "false", "no", "", "2"]:
        assert not load_configuration({"GIT_FORCE_RECLONE": value}).force_reclone, value
    print("  ✓ Flag parsed")


def test_target_dir():
    """TARGET_DIR overrides the repos root, relative to PROJECT_DIR unless absolute."""
    print("Testing TARGET_DIR")

    with tempfile.TemporaryDirectory() as temp_dir:
        project = Path(temp_dir).resolve()

        config = load_configuration({"PROJECT_DIR": str(project), "TARGET_DIR": "src"})
        assert config.repos_root == project / "src"

        config = load_configuration({"PROJECT_DIR": str(project), "TARGET_DIR": str(project / "elsewhere")})
        assert config.repos_root == project / "elsewhere"
        assert config.lock_file == project / "elsewhere" / ".secure-clone.lock"
        print("  ✓ Repos root overridden")


def test_invalid_values():
    """Invalid settings raise ValueError with a configuration error prefix."""
    print("Testing invalid values")

    for environ in [
        {"SECURE_CLONE_LOG_LEVEL": "LOUD"},
        {"SECURE_CLONE_LOCK_TIMEOUT": "soon"},
        {"SECURE_CLONE_LOCK_TIMEOUT": "-1"},
        {"SECURE_CLONE_LOW_SPEED_TIME": "1.5"},
        {"SECURE_CLONE_LOG_FILE": "logs/secure-clone.log"},
    ]:
        with pytest.raises(ValueError) as excinfo:
            load_configuration(environ)
        assert str(excinfo.value).startswith("Configuration error"), environ

    with pytest.raises(ValueError):
        Config(git_branch=" ")
    print("  ✓ Invalid values rejected")


def test_validation_warnings():
    """Questionable but accepted settings produce warnings."""
    print("Testing configuration warnings")

    with tempfile.TemporaryDirectory() as temp_dir:
        token_file = Path(temp_dir) / "token"
        token_file.write_text("abc\n")

        config = Config(
            git_url="http://git.internal/team/repo.git",
            git_token="abc",
            git_token_file=token_file,
            git_host="https://git.example.com/",
            lock_timeout=0,
        )
        warnings = validate_configuration(config)

        assert len(warnings) == 4
        assert any("token file wins" in warning for warning in warnings)
        assert any("plain http" in warning for warning in warnings)
        assert any("bare host name" in warning for warning in warnings)
        assert any("LOCK_TIMEOUT" in warning for warning in warnings)

        assert validate_configuration(Config(git_repo="acme/widgets")) == []
        print("  ✓ Warnings produced")


def test_dotenv_file():
    """Without an explicit mapping, .env in the working directory supplies variables."""
    print("Testing .env loading")

    with tempfile.TemporaryDirectory() as temp_dir:
        (Path(temp_dir) / ".env").write_text("GIT_REPO=acme/from-dotenv\nGIT_BRANCH=develop\n")
        previous_cwd = os.getcwd()
        try:
            os.chdir(temp_dir)
            with patch.dict(os.environ, {"GIT_BRANCH": "release"}, clear=True):
                config = load_configuration()
        finally:
            os.chdir(previous_cwd)

        assert config.git_repo == "acme/from-dotenv"
        # Real environment variables win over .env
        assert config.git_branch == "release"
        print("  ✓ .env loaded")


def run_all_tests():
    """Run all configuration tests."""
    print("Configuration Test Suite")
    print("=" * 60)

    tests = [
        test_defaults,
        test_environment_values,
        test_force_reclone_flag,
        test_target_dir,
        test_invalid_values,
        test_validation_warnings,
        test_dotenv_file,
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

"""Tests for the checks run before any step."""

import pytest

from debian_tweaks import preflight
from debian_tweaks.errors import PrerequisiteError
from debian_tweaks.preflight import check_prerequisites


@pytest.fixture
def regular_user(monkeypatch):
    monkeypatch.setattr(preflight.os, "geteuid", lambda: 1000)
    monkeypatch.setattr(preflight.shutil, "which", lambda cmd: f"/usr/bin/{cmd}")


class TestCheckPrerequisites:
    def test_refuses_root(self, monkeypatch, config, commands):
        monkeypatch.setattr(preflight.os, "geteuid", lambda: 0)

        with pytest.raises(PrerequisiteError, match="Do not run as root"):
            check_prerequisites(config, commands)

    def test_root_allowed_when_configured(self, monkeypatch, config, commands):
        monkeypatch.setattr(preflight.os, "geteuid", lambda: 0)
        monkeypatch.setattr(preflight.shutil, "which", lambda cmd: f"/usr/bin/{cmd}")
        config.ALLOW_ROOT = True

        check_prerequisites(config, commands)

    def test_missing_commands_are_named(self, monkeypatch, config, commands):
        monkeypatch.setattr(preflight.os, "geteuid", lambda: 1000)
        monkeypatch.setattr(preflight.shutil, "which", lambda cmd: None if cmd in ("git", "gpg") else cmd)
        config.REQUIRED_COMMANDS = ["apt-get", "git", "gpg"]

        with pytest.raises(PrerequisiteError, match="Required commands not found: git, gpg"):
            check_prerequisites(config, commands)

    def test_sudo_validated(self, regular_user, config, commands):
        commands.use_sudo = True

        check_prerequisites(config, commands)

        assert commands.ran("sudo", "-v")

    def test_dry_run_skips_sudo(self, regular_user, config, commands):
        commands.use_sudo = True

        check_prerequisites(config, commands, dry_run=True)

        assert not commands.ran("sudo")

    def test_sudo_failure(self, regular_user, config, commands):
        commands.use_sudo = True
        commands.on("sudo", "-v", returncode=1, stderr="a password is required")

        with pytest.raises(PrerequisiteError, match="sudo is not available"):
            check_prerequisites(config, commands)

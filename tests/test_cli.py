"""Tests for the debian-tweaks command line."""

import json
import signal

import pytest
from click.testing import CliRunner

from debian_tweaks import VERSION
from debian_tweaks import cli
from debian_tweaks.context import build_context
from debian_tweaks.errors import PrerequisiteError, StepActionError
from debian_tweaks.models import FailurePolicy, Step
from debian_tweaks.registry import StepRegistry


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"home": str(tmp_path / "home"), "github_token": None}))
    return path


@pytest.fixture
def wired(monkeypatch, commands):
    """Route the CLI through the fake runner and skip real preflight checks."""
    monkeypatch.setattr(
        cli, "build_context",
        lambda config, logger, workspace: build_context(config, logger, workspace, commands=commands),
    )
    monkeypatch.setattr(cli, "check_prerequisites", lambda config, commands, dry_run=False: None)
    previous = signal.getsignal(signal.SIGTERM)
    yield
    assert signal.getsignal(signal.SIGTERM) == previous


def registry_of(*steps):
    return lambda config: StepRegistry(steps)


def ok(ctx):
    return "done"


def fail(ctx):
    raise StepActionError("nope")


class TestMain:
    def test_version(self):
        result = CliRunner().invoke(cli.main, ["--version"])
        assert result.exit_code == 0
        assert VERSION in result.output

    def test_success_exit_code(self, wired, monkeypatch, config_file, tmp_path):
        monkeypatch.setattr(cli, "build_steps", registry_of(Step("a", "a", ok), Step("b", "b", fail)))

        result = CliRunner().invoke(cli.main, ["--config", str(config_file)])

        assert result.exit_code == 0
        log = (tmp_path / "home" / "Downloads" / "install.log").read_text()
        assert "[ERROR] [b] nope" in log
        assert "Steps that did not succeed: b" in log

    def test_fatal_step_exit_code(self, wired, monkeypatch, config_file):
        monkeypatch.setattr(
            cli, "build_steps",
            registry_of(Step("a", "a", fail, failure_policy=FailurePolicy.FATAL), Step("b", "b", ok)),
        )

        result = CliRunner().invoke(cli.main, ["--config", str(config_file)])

        assert result.exit_code == 1

    def test_prerequisite_exit_code(self, wired, monkeypatch, config_file):
        def refuse(config, commands, dry_run=False):
            raise PrerequisiteError("Required commands not found: dpkg")

        monkeypatch.setattr(cli, "check_prerequisites", refuse)
        monkeypatch.setattr(cli, "build_steps", registry_of(Step("a", "a", ok)))

        result = CliRunner().invoke(cli.main, ["--config", str(config_file)])

        assert result.exit_code == 2

    def test_locked_run_exit_code(self, wired, monkeypatch, config_file, tmp_path):
        from debian_tweaks.workspace import RunLock

        monkeypatch.setattr(cli, "build_steps", registry_of(Step("a", "a", ok)))
        lock_file = tmp_path / "home" / "Downloads" / ".debian-tweaks.lock"
        with RunLock(lock_file):
            result = CliRunner().invoke(cli.main, ["--config", str(config_file)])

        assert result.exit_code == 2

    def test_dry_run_does_not_act(self, wired, monkeypatch, config_file, commands):
        calls = []
        monkeypatch.setattr(
            cli, "build_steps", registry_of(Step("a", "a", lambda ctx: calls.append("a")))
        )

        result = CliRunner().invoke(cli.main, ["--config", str(config_file), "--dry-run", "--reboot"])

        assert result.exit_code == 0
        assert calls == []
        assert not commands.ran("systemctl", "reboot")

    def test_flags_reach_config(self, wired, monkeypatch, config_file):
        seen = {}

        def capture(config):
            seen["config"] = config
            return StepRegistry()

        monkeypatch.setattr(cli, "build_steps", capture)

        result = CliRunner().invoke(
            cli.main,
            [
                "--config", str(config_file),
                "--with-virtualization",
                "--skip-kernel",
                "--skip-stage", "desktop",
                "--skip-stage", "apps",
                "--shell", "fish",
                "--asset-selector", "newest",
            ],
        )

        assert result.exit_code == 0
        config = seen["config"]
        assert config.WITH_VIRTUALIZATION is True
        assert config.WITH_KERNEL is False
        assert config.SKIP_STAGES == ["desktop", "apps"]
        assert config.DEFAULT_SHELL == "fish"
        assert config.ASSET_SELECTOR == "newest"

    def test_reboot_after_success(self, wired, monkeypatch, config_file, commands):
        monkeypatch.setattr(cli, "build_steps", registry_of(Step("a", "a", ok)))

        result = CliRunner().invoke(cli.main, ["--config", str(config_file), "--reboot"])

        assert result.exit_code == 0
        assert commands.ran("systemctl", "reboot")

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"nonsense": 1}))

        result = CliRunner().invoke(cli.main, ["--config", str(path)])

        assert result.exit_code == 2

    @pytest.mark.parametrize(
        "overrides",
        [
            {"vendor_tools": ["nope"]},
            {
                "deb_packages": [
                    {"name": "x", "source": "deb-url", "url": "https://example.com/x.deb"},
                    {"name": "x", "source": "deb-url", "url": "https://example.com/y.deb"},
                ]
            },
            {"config_files": {".gitconfig": ".gitconfig", "gitconfig": ".config/git/config"}},
        ],
        ids=["unknown-vendor-tool", "duplicate-deb", "colliding-config-copies"],
    )
    def test_catalogue_config_errors(self, tmp_path, overrides):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"home": str(tmp_path / "home"), **overrides}))

        result = CliRunner().invoke(cli.main, ["--config", str(path), "--dry-run"])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_workspace_cleaned_after_run(self, wired, monkeypatch, config_file, tmp_path):
        def leave_temp_dir(ctx):
            ctx.workspace.make_temp_dir("leftover")

        monkeypatch.setattr(cli, "build_steps", registry_of(Step("a", "a", leave_temp_dir)))

        result = CliRunner().invoke(cli.main, ["--config", str(config_file)])

        assert result.exit_code == 0
        assert list((tmp_path / "home" / "Downloads").glob("debian_tweaks_*")) == []

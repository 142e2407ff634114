"""Tests for StepRegistry and the assembled step catalogue."""

import pytest

from debian_tweaks.config import Config
from debian_tweaks.errors import DuplicateStepError
from debian_tweaks.models import Step
from debian_tweaks.registry import StepRegistry
from debian_tweaks.steps import STAGES, build_steps


def noop(ctx):
    return None


class TestStepRegistry:
    def test_register_keeps_order(self):
        registry = StepRegistry()
        for name in ("one", "two", "three"):
            registry.register(Step(name, name, noop))

        assert registry.names == ["one", "two", "three"]
        assert len(registry) == 3
        assert [s.name for s in registry] == ["one", "two", "three"]

    def test_duplicate_name_is_rejected(self):
        registry = StepRegistry([Step("one", "one", noop)])

        with pytest.raises(DuplicateStepError):
            registry.register(Step("one", "again", noop))
        assert len(registry) == 1

    def test_skip_stages_filters_steps(self):
        registry = StepRegistry(
            [
                Step("a", "a", noop, stage="core"),
                Step("b", "b", noop, stage="desktop"),
                Step("c", "c", noop, stage="core"),
            ]
        )

        assert [s.name for s in registry.steps(["desktop"])] == ["a", "c"]


class TestCatalogue:
    def test_default_catalogue_order(self, config):
        names = build_steps(config).names

        assert names[:3] == ["create-apt-directories", "refresh-package-index", "install-prerequisites"]
        assert names[-1] == "final-cleanup"
        assert names.index("enable-backports") < names.index("install-backports-packages")
        assert names.index("add-repo-vscode") < names.index("install-vscode")
        assert names.index("add-repo-liquorix") < names.index("install-liquorix-kernel")
        assert "install-deb-obsidian" in names
        assert "install-vendor-tailscale" in names
        assert "install-virtualization-packages" not in names

    def test_fatal_steps(self, config):
        fatal = [s.name for s in build_steps(config) if s.fatal]
        assert fatal == ["create-apt-directories", "install-prerequisites"]

    def test_every_stage_is_known(self, config):
        config.WITH_VIRTUALIZATION = True
        for step in build_steps(config):
            assert step.stage in STAGES

    def test_optional_groups(self, config):
        config.WITH_KERNEL = False
        config.WITH_VIRTUALIZATION = True
        names = build_steps(config).names

        assert "install-liquorix-kernel" not in names
        assert names[-5:-1] == [
            "install-virtualization-packages",
            "enable-libvirtd",
            "start-libvirt-default-network",
            "add-user-to-libvirt-groups",
        ]

    def test_fish_variant(self, config):
        config.DEFAULT_SHELL = "fish"
        names = build_steps(config).names

        assert "install-fish" in names
        assert "copy-fish-config" in names
        assert "install-oh-my-zsh" not in names
        assert "set-default-shell" in names

    def test_zsh_variant_lists_plugins(self, config):
        names = build_steps(config).names

        assert "install-oh-my-zsh" in names
        assert "install-zsh-plugin-zsh-autocomplete" in names
        assert names.index("install-oh-my-zsh") < names.index("stow-zsh-dotfiles")

    def test_config_file_copies(self, config):
        config.CONFIG_FILES = {".tmux.conf": ".tmux.conf"}
        assert "copy-config-tmux.conf" in build_steps(config).names

    def test_names_are_unique(self):
        cfg = Config(WITH_VIRTUALIZATION=True, GITHUB_TOKEN=None)
        names = build_steps(cfg).names
        assert len(names) == len(set(names))

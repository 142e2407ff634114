"""Neovim built from source and the kickstart.nvim configuration."""

import os
from typing import List, Optional

from debian_tweaks.config import Config
from debian_tweaks.context import StepContext
from debian_tweaks.files import backup_path
from debian_tweaks.models import Step
from debian_tweaks.predicates import command_available, file_contains

KICKSTART_MARKER = r"kickstart"


def build_neovim(ctx: StepContext) -> Optional[str]:
    """Clone the stable branch into a temporary directory, build it and install it system-wide."""
    cfg = ctx.config
    tmp_dir = ctx.workspace.make_temp_dir("neovim")
    try:
        src = tmp_dir / "neovim"
        ctx.git.clone(cfg.NEOVIM_REPO, src, depth=1, branch=cfg.NEOVIM_BRANCH)
        ctx.commands.run(
            ["make", "CMAKE_BUILD_TYPE=RelWithDebInfo", f"-j{os.cpu_count() or 1}"],
            cwd=str(src),
            timeout=3600,
        )
        ctx.commands.run(["make", "install"], cwd=str(src), privileged=True)
    finally:
        ctx.workspace.remove(tmp_dir)
    return f"built from {cfg.NEOVIM_BRANCH}"


def install_kickstart(ctx: StepContext) -> Optional[str]:
    cfg = ctx.config
    nvim_dir = cfg.NVIM_CONFIG_DIR
    message = None
    if nvim_dir.exists() or nvim_dir.is_symlink():
        backup = backup_path(nvim_dir)
        message = f"previous config moved to {backup}"
    ctx.git.clone(cfg.KICKSTART_REPO, nvim_dir)
    return message


def editor_steps(config: Config) -> List[Step]:
    return [
        Step(
            name="build-neovim",
            description="Build and install Neovim from source",
            action=build_neovim,
            predicate=command_available("nvim"),
            stage="editor",
        ),
        Step(
            name="install-kickstart-nvim",
            description="Install the kickstart.nvim configuration",
            action=install_kickstart,
            predicate=file_contains(config.NVIM_CONFIG_DIR / "init.lua", KICKSTART_MARKER),
            stage="editor",
        ),
    ]

"""GNOME desktop: Nerd Fonts, Pop Shell tiling and extension enablement."""

from pathlib import Path
from typing import List, Optional

from debian_tweaks.config import Config
from debian_tweaks.context import StepContext
from debian_tweaks.errors import CommandNotFound, StepSkipped
from debian_tweaks.models import Step
from debian_tweaks.predicates import path_exists

POP_SHELL_UUID = "pop-shell@system76.com"


def fonts_dir(config: Config) -> Path:
    return config.HOME / ".local" / "share" / "fonts" / "NerdFonts"


def extensions_dir(config: Config) -> Path:
    return config.HOME / ".local" / "share" / "gnome-shell" / "extensions"


def install_nerd_fonts(ctx: StepContext) -> Optional[str]:
    cfg = ctx.config
    tmp_dir = ctx.workspace.make_temp_dir("nerd-fonts")
    try:
        src = tmp_dir / "nerd-fonts"
        ctx.git.clone(cfg.NERD_FONTS_REPO, src, depth=1)
        ctx.commands.run(["./install.sh", *cfg.NERD_FONTS], cwd=str(src), timeout=3600)
    finally:
        ctx.workspace.remove(tmp_dir)
    return ", ".join(cfg.NERD_FONTS)


def install_pop_shell(ctx: StepContext) -> Optional[str]:
    cfg = ctx.config
    tmp_dir = ctx.workspace.make_temp_dir("pop-shell")
    try:
        src = tmp_dir / "shell"
        ctx.git.clone(cfg.POP_SHELL_REPO, src, depth=1, branch=cfg.POP_SHELL_BRANCH)
        ctx.commands.run(["make", "local-install"], cwd=str(src))
    finally:
        ctx.workspace.remove(tmp_dir)
    return None


def extension_enabled(uuid: str):
    def check(ctx: StepContext) -> bool:
        result = ctx.commands.run(["gnome-extensions", "list", "--enabled"], check=False)
        return result.ok and uuid in result.stdout.split()

    check.__name__ = f"extension_enabled({uuid})"
    return check


def enable_extension_action(uuid: str):
    def action(ctx: StepContext) -> Optional[str]:
        try:
            installed = ctx.commands.run(["gnome-extensions", "list"], check=False)
        except CommandNotFound as e:
            raise StepSkipped("gnome-extensions is not available") from e
        if uuid not in installed.stdout.split():
            raise StepSkipped(f"extension {uuid} is not installed")
        ctx.commands.run(["gnome-extensions", "enable", uuid])
        return None

    return action


def desktop_steps(config: Config) -> List[Step]:
    steps = [
        Step(
            name="install-nerd-fonts",
            description=f"Install Nerd Fonts ({', '.join(config.NERD_FONTS)})",
            action=install_nerd_fonts,
            predicate=path_exists(fonts_dir(config)),
            stage="desktop",
        ),
        Step(
            name="install-pop-shell",
            description="Install the Pop Shell tiling extension",
            action=install_pop_shell,
            predicate=path_exists(extensions_dir(config) / POP_SHELL_UUID),
            stage="desktop",
        ),
    ]
    for uuid in config.GNOME_EXTENSIONS:
        steps.append(
            Step(
                name=f"enable-gnome-extension-{uuid.split('@')[0]}",
                description=f"Enable the GNOME extension {uuid}",
                action=enable_extension_action(uuid),
                predicate=extension_enabled(uuid),
                stage="desktop",
            )
        )
    return steps

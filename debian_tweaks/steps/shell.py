"""Shell setup: Oh My Zsh and plugins, stowed dotfiles, Fish, Starship, login shell."""

import shutil
from pathlib import Path
from typing import List, Optional

from debian_tweaks.config import Config
from debian_tweaks.context import StepContext
from debian_tweaks.errors import StepActionError, StepSkipped
from debian_tweaks.files import backup_path, copy_file
from debian_tweaks.models import Step
from debian_tweaks.predicates import (
    command_available,
    files_identical,
    package_installed,
    path_exists,
    user_shell_is,
)
from debian_tweaks.vendor import VENDOR_SCRIPTS


# ----------------------------------------------------------------
# Zsh
# ----------------------------------------------------------------
def install_oh_my_zsh(ctx: StepContext) -> Optional[str]:
    """Run the upstream installer unattended; fall back to a plain clone plus the template .zshrc."""
    cfg = ctx.config
    try:
        ctx.vendors.run(VENDOR_SCRIPTS["oh-my-zsh"])
        return None
    except StepActionError as e:
        ctx.logger.warning(f"Oh My Zsh installer failed, cloning instead: {e.diagnostic}")

    if cfg.OH_MY_ZSH_DIR.exists():
        shutil.rmtree(cfg.OH_MY_ZSH_DIR)
    ctx.git.clone(cfg.OH_MY_ZSH_REPO, cfg.OH_MY_ZSH_DIR, depth=1)
    zshrc = cfg.HOME / ".zshrc"
    if not zshrc.exists():
        shutil.copy2(cfg.OH_MY_ZSH_DIR / "templates" / "zshrc.zsh-template", zshrc)
    return "installed from git"


def plugin_action(name: str, url: str, depth: Optional[int]):
    def action(ctx: StepContext) -> Optional[str]:
        dest = ctx.config.ZSH_CUSTOM / "plugins" / name
        ctx.git.clone(url, dest, depth=depth)
        return None

    return action


def zshrc_stowed(ctx: StepContext) -> bool:
    zshrc = ctx.config.HOME / ".zshrc"
    target = ctx.config.DOTFILES_DIR / "zsh" / ".zshrc"
    return zshrc.is_symlink() and zshrc.resolve() == target.resolve()


def stow_zsh_dotfiles(ctx: StepContext) -> Optional[str]:
    cfg = ctx.config
    package_dir = cfg.DOTFILES_DIR / "zsh"
    package_dir.mkdir(parents=True, exist_ok=True)
    managed = package_dir / ".zshrc"
    if not managed.exists():
        ctx.downloader.fetch(cfg.ZSHRC_URL, managed)

    zshrc = cfg.HOME / ".zshrc"
    if zshrc.is_symlink() and not zshrc_stowed(ctx):
        zshrc.unlink()
    elif zshrc.exists() and not zshrc.is_symlink():
        backup_path(zshrc)

    ctx.commands.run(["stow", "-d", str(cfg.DOTFILES_DIR), "-t", str(cfg.HOME), "zsh"])
    return f"{zshrc} -> {managed}"


def zsh_steps(config: Config) -> List[Step]:
    steps = [
        Step(
            name="install-oh-my-zsh",
            description="Install Oh My Zsh",
            action=install_oh_my_zsh,
            predicate=path_exists(config.OH_MY_ZSH_DIR / "oh-my-zsh.sh"),
            stage="shell",
        )
    ]
    for name, url, depth in config.ZSH_PLUGINS:
        steps.append(
            Step(
                name=f"install-zsh-plugin-{name}",
                description=f"Install the {name} Zsh plugin",
                action=plugin_action(name, url, depth),
                predicate=path_exists(config.ZSH_CUSTOM / "plugins" / name),
                stage="shell",
            )
        )
    steps.append(
        Step(
            name="stow-zsh-dotfiles",
            description="Link ~/.zshrc from ~/dotfiles with GNU Stow",
            action=stow_zsh_dotfiles,
            predicate=zshrc_stowed,
            stage="shell",
        )
    )
    return steps


# ----------------------------------------------------------------
# Fish
# ----------------------------------------------------------------
def install_fish(ctx: StepContext) -> Optional[str]:
    ctx.apt.install(["fish"])
    return None


def copy_action(source: Path, dest: Path):
    def action(ctx: StepContext) -> Optional[str]:
        if not source.is_file():
            raise StepSkipped(f"{source} not found")
        copy_file(source, dest)
        return f"copied to {dest}"

    return action


def fish_steps(config: Config) -> List[Step]:
    source = config.DOTFILES_SOURCE / "config.fish"
    dest = config.XDG_CONFIG_HOME / "fish" / "config.fish"
    return [
        Step(
            name="install-fish",
            description="Install the Fish shell",
            action=install_fish,
            predicate=package_installed("fish"),
            stage="shell",
        ),
        Step(
            name="copy-fish-config",
            description="Copy the Fish configuration",
            action=copy_action(source, dest),
            predicate=files_identical(source, dest),
            stage="shell",
        ),
    ]


def config_copy_steps(config: Config) -> List[Step]:
    steps = []
    for name, relative in config.CONFIG_FILES.items():
        source = config.DOTFILES_SOURCE / name
        dest = config.HOME / relative
        steps.append(
            Step(
                name=f"copy-config-{Path(name).name.lstrip('.')}",
                description=f"Copy {name} to {dest}",
                action=copy_action(source, dest),
                predicate=files_identical(source, dest),
                stage="shell",
            )
        )
    return steps


# ----------------------------------------------------------------
# Login shell and prompt
# ----------------------------------------------------------------
def set_default_shell(ctx: StepContext) -> Optional[str]:
    shell = ctx.config.DEFAULT_SHELL
    path = shutil.which(shell) or f"/usr/bin/{shell}"
    ctx.commands.run(["chsh", "-s", path, ctx.config.USERNAME], privileged=True)
    return f"login shell set to {path}"


def install_starship(ctx: StepContext) -> Optional[str]:
    ctx.vendors.run(VENDOR_SCRIPTS["starship"])
    return None


def login_shell_steps(config: Config) -> List[Step]:
    return [
        Step(
            name="set-default-shell",
            description=f"Make {config.DEFAULT_SHELL} the login shell",
            action=set_default_shell,
            predicate=user_shell_is(config.DEFAULT_SHELL),
            stage="shell",
            follow_up="Log out and back in to use the new login shell",
        ),
        Step(
            name="install-starship",
            description="Install the Starship prompt",
            action=install_starship,
            predicate=command_available("starship"),
            stage="shell",
        ),
    ]


def shell_steps(config: Config) -> List[Step]:
    if config.DEFAULT_SHELL == "fish":
        steps = fish_steps(config)
    else:
        steps = zsh_steps(config)
    return steps + config_copy_steps(config) + login_shell_steps(config)

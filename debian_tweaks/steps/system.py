"""Base system steps: APT directories, package sets, locales, Flatpak, cleanup."""

import re
from typing import List, Optional

from debian_tweaks.config import Config
from debian_tweaks.context import StepContext
from debian_tweaks.errors import StepActionError
from debian_tweaks.models import FailurePolicy, Step
from debian_tweaks.predicates import (
    all_of,
    file_contains,
    package_installed,
    path_exists,
)
from debian_tweaks.steps.repositories import require_debian


# ----------------------------------------------------------------
# Core
# ----------------------------------------------------------------
def create_apt_directories(ctx: StepContext) -> Optional[str]:
    cfg = ctx.config
    ctx.commands.run(
        ["install", "-d", "-m", "0755", str(cfg.KEYRINGS_DIR), str(cfg.SOURCES_DIR)],
        privileged=True,
    )
    return None


def refresh_package_index(ctx: StepContext) -> Optional[str]:
    ctx.apt.update_index()
    return None


def install_prerequisites(ctx: StepContext) -> Optional[str]:
    missing = ctx.apt.missing(ctx.config.PREREQUISITE_PACKAGES)
    ctx.apt.install(missing)
    return f"installed {', '.join(missing)}" if missing else None


def core_steps(config: Config) -> List[Step]:
    return [
        Step(
            name="create-apt-directories",
            description="Create APT keyring and source directories",
            action=create_apt_directories,
            predicate=all_of(path_exists(config.KEYRINGS_DIR), path_exists(config.SOURCES_DIR)),
            failure_policy=FailurePolicy.FATAL,
        ),
        Step(
            name="refresh-package-index",
            description="Refresh the package index",
            action=refresh_package_index,
        ),
        Step(
            name="install-prerequisites",
            description="Install prerequisite tools",
            action=install_prerequisites,
            predicate=package_installed(*config.PREREQUISITE_PACKAGES),
            failure_policy=FailurePolicy.FATAL,
        ),
    ]


# ----------------------------------------------------------------
# Packages
# ----------------------------------------------------------------
def installed_unwanted(ctx: StepContext) -> List[str]:
    found = [p for p in ctx.config.UNWANTED_PACKAGES if ctx.apt.is_installed(p)]
    for pattern in ctx.config.UNWANTED_PATTERNS:
        found.extend(p for p in ctx.apt.installed_matching(pattern) if p not in found)
    return found


def no_unwanted_packages(ctx: StepContext) -> bool:
    return not installed_unwanted(ctx)


def remove_unwanted_packages(ctx: StepContext) -> Optional[str]:
    unwanted = installed_unwanted(ctx)
    if not unwanted:
        return None
    ctx.apt.remove(unwanted)
    ctx.apt.autoremove()
    ctx.apt.autoclean()
    return f"removed {len(unwanted)} packages"


def install_required_packages(ctx: StepContext) -> Optional[str]:
    """Install missing packages one at a time so one bad name does not block the rest."""
    missing = ctx.apt.missing(ctx.config.REQUIRED_PACKAGES)
    failed = []
    for name in missing:
        try:
            ctx.apt.install([name])
        except StepActionError as e:
            ctx.logger.warning(f"Failed to install {name}: {e}")
            failed.append(name)
    if failed:
        raise StepActionError(
            f"Failed to install {len(failed)} of {len(missing)} packages: {', '.join(failed)}"
        )
    return f"installed {len(missing)} packages"


def install_backports_packages(ctx: StepContext) -> Optional[str]:
    cfg = ctx.config
    require_debian(ctx)
    missing = ctx.apt.missing(cfg.NEOVIM_BUILD_DEPS + cfg.BACKPORTS_PACKAGES)
    ctx.apt.install(missing, target_release=cfg.BACKPORTS_SUITE)
    return f"installed {len(missing)} packages from {cfg.BACKPORTS_SUITE}"


def remove_unwanted_step(config: Config) -> Step:
    return Step(
        name="remove-unwanted-packages",
        description="Remove unwanted default applications",
        action=remove_unwanted_packages,
        predicate=no_unwanted_packages,
        stage="packages",
    )


def package_steps(config: Config) -> List[Step]:
    return [
        Step(
            name="install-required-packages",
            description="Install the desktop package set",
            action=install_required_packages,
            predicate=package_installed(*config.REQUIRED_PACKAGES),
            stage="packages",
        ),
        Step(
            name="install-backports-packages",
            description="Install Neovim build tools, LibreOffice, PipeWire and Mesa from backports",
            action=install_backports_packages,
            predicate=package_installed(*(config.NEOVIM_BUILD_DEPS + config.BACKPORTS_PACKAGES)),
            stage="packages",
        ),
    ]


# ----------------------------------------------------------------
# Locales
# ----------------------------------------------------------------
def locale_line(locale: str) -> str:
    """'fr_CH.UTF-8' -> 'fr_CH.UTF-8 UTF-8' as listed in /etc/locale.gen."""
    charset = locale.split(".", 1)[1] if "." in locale else "ISO-8859-1"
    return f"{locale} {charset}"


def sed_escape(text: str) -> str:
    return re.sub(r"([.\[\]*^$+?(){}|\\/])", r"\\\1", text)


def configure_locales(ctx: StepContext) -> Optional[str]:
    cfg = ctx.config
    locale_gen = str(cfg.LOCALE_GEN)
    for locale in cfg.LOCALES:
        enabled = file_contains(cfg.LOCALE_GEN, rf"^{re.escape(locale)}\s")
        if enabled(ctx):
            continue
        ctx.commands.run(
            ["sed", "-i", "-E", rf"s/^#\s*({sed_escape(locale)}\s)/\1/", locale_gen],
            privileged=True,
        )
        if not enabled(ctx):
            ctx.commands.run(
                ["tee", "-a", locale_gen],
                privileged=True,
                input_text=locale_line(locale) + "\n",
            )
    ctx.commands.run(["locale-gen"], privileged=True)
    return f"enabled {', '.join(cfg.LOCALES)}"


def locale_step(config: Config) -> Step:
    return Step(
        name="configure-locales",
        description="Enable configured locales",
        action=configure_locales,
        predicate=all_of(
            *(file_contains(config.LOCALE_GEN, rf"^{re.escape(l)}\s") for l in config.LOCALES)
        ),
    )


# ----------------------------------------------------------------
# Flatpak
# ----------------------------------------------------------------
def flathub_configured(ctx: StepContext) -> bool:
    result = ctx.commands.run(["flatpak", "remotes", "--columns=name"], check=False)
    return result.ok and "flathub" in result.stdout.split()


def setup_flatpak(ctx: StepContext) -> Optional[str]:
    if not ctx.apt.is_installed("flatpak"):
        ctx.apt.install(["flatpak"])
    ctx.commands.run(
        ["flatpak", "remote-add", "--if-not-exists", "flathub", ctx.config.FLATHUB_URL],
        privileged=True,
    )
    return None


def flatpak_step(config: Config) -> Step:
    return Step(
        name="setup-flatpak",
        description="Install Flatpak and add the Flathub remote",
        action=setup_flatpak,
        predicate=all_of(package_installed("flatpak"), flathub_configured),
        stage="apps",
    )


# ----------------------------------------------------------------
# Cleanup
# ----------------------------------------------------------------
def final_cleanup(ctx: StepContext) -> Optional[str]:
    ctx.apt.autoremove()
    ctx.apt.autoclean()
    ctx.apt.clean()
    return None


def cleanup_step(config: Config) -> Step:
    return Step(
        name="final-cleanup",
        description="Remove unused packages and clean the APT cache",
        action=final_cleanup,
        stage="cleanup",
    )

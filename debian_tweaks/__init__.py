"""
Debian Tweaks
-------------------------------------------------------

Idempotent provisioning for a freshly installed Debian/Ubuntu desktop:
removes default applications, installs a curated package set, adds
third-party APT repositories, installs .deb packages from GitHub releases,
builds Neovim from source, sets up Zsh/Fish/Starship, links dotfiles with
GNU Stow, enables GNOME extensions and optionally configures QEMU/KVM.

Every unit of work is a Step with an idempotency predicate, an action and a
failure policy, executed in order by the ProvisioningRunner.
"""

APP_NAME = "Debian Tweaks"
VERSION = "2.0.0"

__all__ = ["APP_NAME", "VERSION"]

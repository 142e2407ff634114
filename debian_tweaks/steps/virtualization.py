"""QEMU/KVM with libvirt: packages, service, default network and user groups."""

from typing import List, Optional

from debian_tweaks.config import Config
from debian_tweaks.context import StepContext
from debian_tweaks.models import Step
from debian_tweaks.predicates import package_installed, user_in_groups

LIBVIRT_SERVICE = "libvirtd"
DEFAULT_NETWORK = "default"
GROUP_FOLLOW_UP = "Log out and back in to apply libvirt group membership"


def install_virtualization_packages(ctx: StepContext) -> Optional[str]:
    missing = ctx.apt.missing(ctx.config.VIRTUALIZATION_PACKAGES)
    ctx.apt.install(missing)
    return f"installed {len(missing)} packages"


def libvirtd_active(ctx: StepContext) -> bool:
    return ctx.commands.succeeds(
        ["systemctl", "is-enabled", LIBVIRT_SERVICE]
    ) and ctx.commands.succeeds(["systemctl", "is-active", LIBVIRT_SERVICE])


def enable_libvirtd(ctx: StepContext) -> Optional[str]:
    ctx.commands.run(["systemctl", "enable", "--now", LIBVIRT_SERVICE], privileged=True)
    return None


def network_info(ctx: StepContext) -> dict:
    """Parse `virsh net-info default` into a lowercase key/value mapping."""
    result = ctx.commands.run(["virsh", "net-info", DEFAULT_NETWORK], privileged=True, check=False)
    info = {}
    if result.ok:
        for line in result.stdout.splitlines():
            key, _, value = line.partition(":")
            if value:
                info[key.strip().lower()] = value.strip().lower()
    return info


def default_network_running(ctx: StepContext) -> bool:
    info = network_info(ctx)
    return info.get("active") == "yes" and info.get("autostart") == "yes"


def start_default_network(ctx: StepContext) -> Optional[str]:
    info = network_info(ctx)
    if info.get("active") != "yes":
        ctx.commands.run(["virsh", "net-start", DEFAULT_NETWORK], privileged=True)
    if info.get("autostart") != "yes":
        ctx.commands.run(["virsh", "net-autostart", DEFAULT_NETWORK], privileged=True)
    return None


def add_user_to_groups(ctx: StepContext) -> Optional[str]:
    cfg = ctx.config
    for group in cfg.VIRTUALIZATION_GROUPS:
        ctx.commands.run(["usermod", "-a", "-G", group, cfg.USERNAME], privileged=True)
    return f"{cfg.USERNAME} added to {', '.join(cfg.VIRTUALIZATION_GROUPS)}"


def virtualization_steps(config: Config) -> List[Step]:
    return [
        Step(
            name="install-virtualization-packages",
            description="Install QEMU/KVM and libvirt",
            action=install_virtualization_packages,
            predicate=package_installed(*config.VIRTUALIZATION_PACKAGES),
            stage="virtualization",
        ),
        Step(
            name="enable-libvirtd",
            description="Enable and start the libvirtd service",
            action=enable_libvirtd,
            predicate=libvirtd_active,
            stage="virtualization",
        ),
        Step(
            name="start-libvirt-default-network",
            description="Start and autostart the default libvirt network",
            action=start_default_network,
            predicate=default_network_running,
            stage="virtualization",
        ),
        Step(
            name="add-user-to-libvirt-groups",
            description=f"Add {config.USERNAME} to {', '.join(config.VIRTUALIZATION_GROUPS)}",
            action=add_user_to_groups,
            predicate=user_in_groups(*config.VIRTUALIZATION_GROUPS),
            stage="virtualization",
            follow_up=GROUP_FOLLOW_UP,
        ),
    ]

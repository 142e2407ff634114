"""The ordered step catalogue, assembled from configuration."""

from debian_tweaks.config import Config
from debian_tweaks.registry import StepRegistry
from debian_tweaks.steps import (
    applications,
    desktop,
    editor,
    repositories,
    shell,
    system,
    virtualization,
)

STAGES = (
    "core",
    "repositories",
    "packages",
    "kernel",
    "editor",
    "shell",
    "desktop",
    "apps",
    "virtualization",
    "cleanup",
)


def build_steps(config: Config) -> StepRegistry:
    """
    Register every step in execution order.

    Kernel steps are left out when WITH_KERNEL is off and virtualization
    steps unless WITH_VIRTUALIZATION is on. SKIP_STAGES is applied later by
    StepRegistry.steps().
    """
    registry = StepRegistry()
    registry.extend(system.core_steps(config))
    registry.register(system.remove_unwanted_step(config))
    registry.register(system.locale_step(config))
    registry.register(repositories.backports_step(config))
    registry.extend(repositories.third_party_steps(config))
    registry.register(system.flatpak_step(config))
    registry.extend(system.package_steps(config))
    if config.WITH_KERNEL:
        registry.extend(repositories.kernel_steps(config))
    registry.extend(editor.editor_steps(config))
    registry.extend(shell.shell_steps(config))
    registry.extend(desktop.desktop_steps(config))
    registry.extend(applications.deb_steps(config))
    registry.extend(applications.vendor_steps(config))
    if config.WITH_VIRTUALIZATION:
        registry.extend(virtualization.virtualization_steps(config))
    registry.register(system.cleanup_step(config))
    return registry


__all__ = ["STAGES", "build_steps"]

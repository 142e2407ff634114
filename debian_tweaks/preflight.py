"""Checks that must pass before any step runs."""

import logging
import os
import shutil

from debian_tweaks.config import Config
from debian_tweaks.errors import PrerequisiteError, StepActionError
from debian_tweaks.process import CommandRunner

logger = logging.getLogger(__name__)


def check_prerequisites(config: Config, commands: CommandRunner, dry_run: bool = False) -> None:
    """
    Refuse to start unless the environment can run the provisioning steps.

    Args:
        config: Run configuration
        commands: Process runner used to validate sudo
        dry_run: Skip the interactive sudo validation

    Raises:
        PrerequisiteError: When running as root, a required command is missing,
            or sudo cannot be used
    """
    if os.geteuid() == 0 and not config.ALLOW_ROOT:
        raise PrerequisiteError(
            "Do not run as root; run as your regular user, privileged commands use sudo"
        )

    missing = [cmd for cmd in config.REQUIRED_COMMANDS if shutil.which(cmd) is None]
    if missing:
        raise PrerequisiteError(f"Required commands not found: {', '.join(missing)}")

    if dry_run or not commands.use_sudo:
        return

    logger.info("Validating sudo credentials...")
    try:
        commands.run(["sudo", "-v"], capture=False)
    except StepActionError as e:
        raise PrerequisiteError(f"sudo is not available: {e}") from e
